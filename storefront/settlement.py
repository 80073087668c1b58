# storefront/settlement.py
# 💰 Начисление баллов за заказ: маркер settlements + баланс users в одной транзакции
import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from .errors import OrderOwnerMismatch, TransactionConflict, UserNotFound
from .models import Settlement, User

log = logging.getLogger("storefront.settlement")

# Postgres: serialization_failure / deadlock_detected
PG_RETRY_ERRCODES = {"40001", "40P01"}

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BACKOFF = 0.05


class SettlementStatus(str, enum.Enum):
    SETTLED = "settled"
    ALREADY_SETTLED = "already_settled"
    USER_NOT_FOUND = "user_not_found"
    OWNER_MISMATCH = "order_owner_mismatch"
    CONFLICT = "transaction_conflict"


@dataclass(frozen=True)
class SettlementResult:
    order_id: str
    user_id: str
    status: SettlementStatus
    award: int = 0
    balance: Optional[int] = None
    attempts: int = 1
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (SettlementStatus.SETTLED, SettlementStatus.ALREADY_SETTLED)

    @property
    def should_notify(self) -> bool:
        # only a fresh credit is worth telling the customer about
        return self.status is SettlementStatus.SETTLED and self.award > 0

    def raise_for_status(self) -> "SettlementResult":
        if self.status is SettlementStatus.USER_NOT_FOUND:
            raise UserNotFound(self.order_id, self.user_id, self.detail)
        if self.status is SettlementStatus.OWNER_MISMATCH:
            raise OrderOwnerMismatch(self.order_id, self.user_id, self.detail)
        if self.status is SettlementStatus.CONFLICT:
            raise TransactionConflict(self.order_id, self.user_id, self.detail)
        return self


def _pgcode_from(exc: Exception) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    for source in (orig, getattr(orig, "__cause__", None)):
        code = getattr(source, "pgcode", None) or getattr(source, "sqlstate", None)
        if code:
            return code
    return None


# 🔁 Конфликт конкурентной записи: повторяем всю попытку
def is_conflict(exc: Exception) -> bool:
    if isinstance(exc, (StaleDataError, IntegrityError)):
        return True
    if isinstance(exc, DBAPIError):
        if _pgcode_from(exc) in PG_RETRY_ERRCODES:
            return True
        if isinstance(exc, OperationalError):
            msg = str(exc).lower()
            return any(k in msg for k in ("database is locked", "deadlock detected", "could not serialize access"))
    return False


async def settle_once(session: AsyncSession, *, user_id: str, order_id: str, award: int) -> SettlementResult:
    """One transactional attempt. The session must not have a transaction open."""
    try:
        async with session.begin():
            res = await session.execute(select(User).where(User.id == user_id).with_for_update())
            user = res.scalar_one_or_none()
            if user is None:
                # nothing written; the block exits and commits an empty transaction
                return SettlementResult(order_id, user_id, SettlementStatus.USER_NOT_FOUND,
                                        detail=f"user {user_id} does not exist")

            marker = await session.get(Settlement, order_id)
            if marker is not None and marker.user_id != user_id:
                # заказ уже оплачен баллами другому пользователю
                return SettlementResult(order_id, user_id, SettlementStatus.OWNER_MISMATCH,
                                        detail=f"order {order_id} already settled for user {marker.user_id}")
            if marker is not None:
                return SettlementResult(order_id, user_id, SettlementStatus.ALREADY_SETTLED,
                                        award=marker.award, balance=user.loyalty_points)

            session.add(Settlement(order_id=order_id, user_id=user_id, award=award))
            if award > 0:
                user.loyalty_points = user.loyalty_points + award
            balance = user.loyalty_points
    except Exception as exc:
        if not is_conflict(exc):
            raise
        return SettlementResult(order_id, user_id, SettlementStatus.CONFLICT,
                                award=award, detail=f"{type(exc).__name__}: {exc}")

    return SettlementResult(order_id, user_id, SettlementStatus.SETTLED, award=award, balance=balance)


async def settle_order(
    session_maker: sessionmaker,
    *,
    user_id: str,
    order_id: str,
    award: int,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: float = DEFAULT_BACKOFF,
) -> SettlementResult:
    # каждая попытка в новой сессии: повторное чтение видит чужой коммит
    if award < 0:
        raise ValueError("award must be >= 0")
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    attempt = 0
    while True:
        attempt += 1
        async with session_maker() as session:
            result = await settle_once(session, user_id=user_id, order_id=order_id, award=award)

        if result.status is not SettlementStatus.CONFLICT:
            break
        if attempt >= max_attempts:
            log.error("settlement gave up: order=%s user=%s attempts=%d (%s)",
                      order_id, user_id, attempt, result.detail)
            break
        log.warning("settlement conflict: order=%s user=%s attempt=%d, retrying", order_id, user_id, attempt)
        await asyncio.sleep(backoff * attempt)

    result = SettlementResult(result.order_id, result.user_id, result.status, result.award,
                              result.balance, attempt, result.detail)
    if result.ok:
        log.info("settlement %s: order=%s user=%s award=%d balance=%s",
                 result.status.value, order_id, user_id, result.award, result.balance)
    return result
