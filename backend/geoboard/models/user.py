import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from geoboard.db.base import Base

class User(Base):
    """Account directory row. Owned by the account service; read-only here."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    name: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    nickname: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    image: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    email: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
