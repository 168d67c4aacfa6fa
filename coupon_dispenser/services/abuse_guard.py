"""
Control anti-abuso: un cupón por huella (IP o cookie) dentro de la ventana.

La huella combina la IP del cliente y un token opaco en cookie. Basta con que
coincida cualquiera de los dos contra un claim reciente para negar.
"""
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.config import Settings
from ..models.coupon import Claim

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fingerprint:
    ip: Optional[str]  # None si no hay dirección del peer
    cookie: Optional[str]
    issued: bool = False  # token generado en este request (hay que mandarlo en la respuesta)


@dataclass(frozen=True)
class Verdict:
    allowed: bool
    time_left: Optional[int] = None  # segundos, solo cuando allowed=False


def client_ip(request: Request, trust_forwarded_for: bool = False) -> Optional[str]:
    if trust_forwarded_for:
        fwd = request.headers.get("x-forwarded-for", "")
        first = fwd.split(",")[0].strip()
        if first:
            return first
    if request.client is None:
        return None
    return request.client.host or None


def read_fingerprint(request: Request, settings: Settings) -> Fingerprint:
    """Huella tal como llega; sin cookie => cookie=None (no se genera token)."""
    return Fingerprint(
        ip=client_ip(request, settings.trust_forwarded_for),
        cookie=request.cookies.get(settings.session_cookie_name) or None,
    )


def issue_fingerprint(request: Request, settings: Settings) -> Fingerprint:
    fp = read_fingerprint(request, settings)
    if fp.cookie:
        return fp
    return Fingerprint(ip=fp.ip, cookie=secrets.token_urlsafe(16), issued=True)


def find_recent_claim(db: Session, fp: Fingerprint, now: int, window_ms: int) -> Optional[Claim]:
    # ip/cookie None no deben casar con claims guardados con NULL
    match = []
    if fp.ip:
        match.append(Claim.ip == fp.ip)
    if fp.cookie:
        match.append(Claim.cookie == fp.cookie)
    if not match:
        return None
    return (
        db.query(Claim)
        .filter(or_(*match), Claim.timestamp > now - window_ms)
        .order_by(Claim.timestamp.desc(), Claim.id.desc())
        .first()
    )


def time_left_seconds(claim: Claim, now: int, window_ms: int) -> int:
    remaining_ms = claim.timestamp + window_ms - now
    # ceil entero; claim.timestamp > now - window garantiza remaining_ms > 0
    return max(1, -(-remaining_ms // 1000))


def check(db: Session, fp: Fingerprint, now: int, window_ms: int) -> Verdict:
    claim = find_recent_claim(db, fp, now, window_ms)
    if claim is None:
        return Verdict(allowed=True)
    left = time_left_seconds(claim, now, window_ms)
    logger.debug("claim denied ip=%s claim_id=%s time_left=%ss", fp.ip, claim.id, left)
    return Verdict(allowed=False, time_left=left)


def apply_session_cookie(response: Response, fp: Fingerprint, settings: Settings) -> None:
    if not fp.issued:
        return
    response.set_cookie(
        key=settings.session_cookie_name,
        value=fp.cookie,
        max_age=settings.claim_window_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )
