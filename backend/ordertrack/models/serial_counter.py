"""Per-prefix serial counter model."""

from sqlmodel import Field, SQLModel


class SerialCounter(SQLModel, table=True):
    """Highest number ever issued for a product code prefix.

    Incremented with a single UPDATE ... RETURNING, which row-locks the
    counter until the order transaction ends. Never decremented, so numbers
    of deleted serials are not reused.
    """

    __tablename__ = "serial_counters"

    prefix: str = Field(primary_key=True, max_length=32)
    last_value: int = Field(default=0)
