import uuid
from sqlalchemy import BigInteger, Integer
from sqlmodel import SQLModel


# SQLite only auto-increments INTEGER primary keys
BigIntegerId = BigInteger().with_variant(Integer(), "sqlite")


def generate_uuid() -> str:
    return str(uuid.uuid4())


class BaseModel(SQLModel):
    pass
