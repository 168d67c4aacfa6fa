import logging
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..models.coupon import Claim, Coupon
from .abuse_guard import Fingerprint

logger = logging.getLogger(__name__)


class CouponsExhausted(Exception):
    """No queda cupón que entregar (pool vacío o el último lo tomó otro request)."""


def next_coupon(db: Session) -> Optional[Coupon]:
    # FIFO: orden de inserción = orden de entrega
    return db.query(Coupon).order_by(Coupon.id.asc()).first()


def allocate(db: Session, fp: Fingerprint, now: int) -> str:
    """
    Entrega el cupón de menor id a la huella `fp`:
    1) INSERT en claims, 2) DELETE del cupón; ambos en la MISMA transacción.
    Cualquier error de SQLAlchemy hace rollback y se propaga al caller.
    """
    coupon = next_coupon(db)
    if coupon is None:
        raise CouponsExhausted()
    code = coupon.code

    claim = Claim(ip=fp.ip, cookie=fp.cookie, timestamp=now)
    try:
        db.add(claim)
        db.flush()
        claim_id = claim.id
        res = db.execute(delete(Coupon).where(Coupon.id == coupon.id))
        if res.rowcount == 0:
            # otro request consumió este cupón entre el SELECT y el DELETE
            raise CouponsExhausted()
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("coupon claimed code=%s claim_id=%s ip=%s", code, claim_id, fp.ip)
    return code
