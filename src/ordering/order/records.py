"""SQLAlchemy table mappings for orders.

Money is stored in integer minor units. The ``pk`` surrogate key gives a stable
insertion order to break ties between orders created in the same instant.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class OrderRecord(Base):
    __tablename__ = "orders"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(255), index=True)
    status: Mapped[str] = mapped_column(String(32))
    total_minor: Mapped[int] = mapped_column(BigInteger)
    currency: Mapped[str] = mapped_column(String(3))

    ship_line1: Mapped[str] = mapped_column(String(255))
    ship_line2: Mapped[str | None] = mapped_column(String(255))
    ship_city: Mapped[str] = mapped_column(String(100))
    ship_region: Mapped[str] = mapped_column(String(100))
    ship_postal_code: Mapped[str] = mapped_column(String(20))
    ship_country: Mapped[str] = mapped_column(String(100))
    ship_landmark: Mapped[str | None] = mapped_column(String(255))

    remote_payment_ref: Mapped[str | None] = mapped_column(String(255), index=True)
    confirmed_payment_id: Mapped[str | None] = mapped_column(String(255))
    confirmed_remote_order_id: Mapped[str | None] = mapped_column(String(255))
    confirmation_signature: Mapped[str | None] = mapped_column(String(255))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    line_items: Mapped[list["LineItemRecord"]] = relationship(
        order_by="LineItemRecord.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class LineItemRecord(Base):
    __tablename__ = "order_line_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_pk: Mapped[int] = mapped_column(ForeignKey("orders.pk"), index=True)
    position: Mapped[int] = mapped_column(Integer)
    product_ref: Mapped[str] = mapped_column(String(255))
    title: Mapped[str | None] = mapped_column(String(255))
    unit_price_minor: Mapped[int] = mapped_column(BigInteger)
    quantity: Mapped[int] = mapped_column(Integer)


class PaymentFailureRecord(Base):
    __tablename__ = "payment_failures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(64), index=True)
    remote_payment_id: Mapped[str | None] = mapped_column(String(255))
    reason: Mapped[str] = mapped_column(Text)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
