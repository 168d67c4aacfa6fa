import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.clock import Clock, get_clock
from ..core.config import Settings, get_settings
from ..db import get_db
from ..services import abuse_guard, allocator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["coupon"])

SERVER_ERROR = "Server error"
NO_COUPONS = "No coupons available"


def _check_or_500(db: Session, fp: abuse_guard.Fingerprint, now: int, settings: Settings):
    try:
        return abuse_guard.check(db, fp, now, settings.claim_window_ms)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("claim ledger read failed ip=%s", fp.ip)
        raise HTTPException(status_code=500, detail=SERVER_ERROR)


@router.get("/claim-coupon", operation_id="claim_coupon_v1")
def claim_coupon(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
):
    fp = abuse_guard.issue_fingerprint(request, settings)
    now = clock()

    # Pool vacío => 400 para todos, antes de mirar el ledger
    try:
        pool_empty = allocator.next_coupon(db) is None
    except SQLAlchemyError:
        db.rollback()
        logger.exception("coupon pool read failed ip=%s", fp.ip)
        raise HTTPException(status_code=500, detail=SERVER_ERROR)
    if pool_empty:
        raise HTTPException(status_code=400, detail=NO_COUPONS)

    verdict = _check_or_500(db, fp, now, settings)
    if not verdict.allowed:
        raise HTTPException(
            status_code=429,
            detail=f"Please wait {verdict.time_left} seconds before claiming again.",
        )

    try:
        code = allocator.allocate(db, fp, now)
    except allocator.CouponsExhausted:
        resp = JSONResponse(status_code=400, content={"message": NO_COUPONS})
    except SQLAlchemyError:
        logger.exception("coupon allocation failed ip=%s", fp.ip)
        raise HTTPException(status_code=500, detail=SERVER_ERROR)
    else:
        resp = JSONResponse({"message": "Coupon claimed successfully", "coupon": code})

    # la cookie nueva viaja también en el 400 (el guard ya dejó pasar)
    abuse_guard.apply_session_cookie(resp, fp, settings)
    return resp


@router.get("/status", operation_id="claim_status_v1")
def claim_status(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
):
    fp = abuse_guard.read_fingerprint(request, settings)
    verdict = _check_or_500(db, fp, clock(), settings)
    if verdict.allowed:
        return {"canClaim": True}
    return {"canClaim": False, "timeLeft": verdict.time_left}
