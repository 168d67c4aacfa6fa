from sqlalchemy import BigInteger, Column, Integer, String

from ..db import Base


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = {"sqlite_autoincrement": True}
    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String, unique=True, nullable=False)


class Claim(Base):
    """Ledger append-only: una fila por cupón entregado, nunca se actualiza ni borra."""

    __tablename__ = "claims"
    __table_args__ = {"sqlite_autoincrement": True}
    id = Column(Integer, primary_key=True, autoincrement=True)
    ip = Column(String, index=True)
    cookie = Column(String, index=True)
    timestamp = Column(BigInteger, index=True, nullable=False)  # epoch ms
