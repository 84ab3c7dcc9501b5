"""
Order → Customer Profile Migration

Links historical orders (taken before customers had accounts) to customer
profiles by fuzzy matching, since orders carry no customer id.

Signals, summed and capped at 1.0:
    - display name equals order customer name (case-insensitive)  +0.80
    - phone numbers equal after normalization                      +0.90
    - delivery address resembles a profile address                 +0.60

Usage:
    migrator = OrderMigrator(data, get_profile_store())
    report = await migrator.generate_report()      # read-only
    stats = await migrator.migrate_all(report)     # writes

Version: 1.0.0
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from restohub.core.exceptions import StaleReportError
from restohub.schemas import MigrationMatch, MigrationReport, MigrationStats, NotMigratable
from restohub.services.data.records import now_iso, parse_model
from restohub.services.profiles.base import BaseProfileStore

logger = logging.getLogger(__name__)

NAME_CONFIDENCE = 0.8
PHONE_CONFIDENCE = 0.9
ADDRESS_CONFIDENCE = 0.6
ADDRESS_TOKEN_OVERLAP = 0.5

WALK_IN = "walk-in customer"


# =============================================================================
# NORMALIZATION & SIGNALS
# =============================================================================

def usable_name(name: Any) -> Optional[str]:
    """Customer name worth matching on, or None for blanks and walk-ins."""
    if not isinstance(name, str):
        return None
    cleaned = name.strip()
    if not cleaned or cleaned.lower() == WALK_IN:
        return None
    return cleaned


def normalize_phone(phone: Any) -> Optional[str]:
    """
    Digits only; numbers longer than ten digits keep their last ten, so
    "+91 98765-43210" and "09876543210" both become "9876543210".
    """
    if phone is None:
        return None
    digits = re.sub(r"\D", "", str(phone))
    if not digits:
        return None
    return digits[-10:] if len(digits) > 10 else digits


def _address_text(address: Any) -> str:
    if not isinstance(address, dict):
        return ""
    parts = [address.get("streetAddress") or "", address.get("city") or ""]
    return " ".join(p.strip() for p in parts if p.strip()).lower()


def _tokens(text: str) -> set[str]:
    return set(re.findall(r"[a-z0-9]+", text))


def addresses_match(order_address: Any, profile_address: Any) -> bool:
    """Substring either way, or at least half of the shorter token set shared."""
    a, b = _address_text(order_address), _address_text(profile_address)
    if not a or not b:
        return False
    if a in b or b in a:
        return True
    ta, tb = _tokens(a), _tokens(b)
    if not ta or not tb:
        return False
    return len(ta & tb) / min(len(ta), len(tb)) >= ADDRESS_TOKEN_OVERLAP


@dataclass
class Candidate:
    profile: dict[str, Any]
    confidence: float = 0.0
    reasons: list[str] = field(default_factory=list)
    migrated_orders: int = 0

    @property
    def profile_id(self) -> str:
        return self.profile["id"]


def score_profile(order: dict[str, Any], profile: dict[str, Any]) -> Candidate:
    candidate = Candidate(profile=profile)

    name = usable_name(order.get("customerName"))
    display_name = usable_name(profile.get("displayName"))
    if name and display_name and name.lower() == display_name.lower():
        candidate.confidence += NAME_CONFIDENCE
        candidate.reasons.append("name")

    order_phone = normalize_phone(order.get("customerPhone"))
    if order_phone and order_phone == normalize_phone(profile.get("phoneNumber")):
        candidate.confidence += PHONE_CONFIDENCE
        candidate.reasons.append("phone")

    delivery = order.get("deliveryAddress")
    if delivery and any(addresses_match(delivery, a) for a in profile.get("addresses") or []):
        candidate.confidence += ADDRESS_CONFIDENCE
        candidate.reasons.append("address")

    candidate.confidence = round(min(candidate.confidence, 1.0), 2)
    return candidate


# =============================================================================
# MIGRATOR
# =============================================================================

class OrderMigrator:
    """
    Generates migration reports and applies them.

    Attributes:
        min_confidence: Best candidates below this are reported not migratable
        max_report_age_seconds: Older reports are rejected by migrate_all
    """

    def __init__(
        self,
        data,
        profiles: BaseProfileStore,
        min_confidence: float = 0.5,
        max_report_age_seconds: int = 900,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.data = data
        self.profiles = profiles
        self.min_confidence = min_confidence
        self.max_report_age_seconds = max_report_age_seconds
        self.clock = clock

    async def _best_candidate(
        self,
        order: dict[str, Any],
        profiles: list[dict[str, Any]],
    ) -> tuple[Optional[Candidate], int]:
        candidates = [c for c in (score_profile(order, p) for p in profiles) if c.confidence > 0]
        if not candidates:
            return None, 0

        top = max(c.confidence for c in candidates)
        tied = [c for c in candidates if c.confidence == top]
        if len(tied) > 1:
            for c in tied:
                c.migrated_orders = await self.profiles.migrated_order_count(c.profile_id)
            # max() keeps the first of equal counts, i.e. profile listing order
            best = max(tied, key=lambda c: c.migrated_orders)
        else:
            best = tied[0]
        return best, len(candidates)

    async def generate_report(self) -> MigrationReport:
        """Classify every order in the log. Writes nothing."""
        orders = await self.data.orders.list_orders()
        profiles = await self.profiles.list_profiles()
        report = MigrationReport(generated_at=self.clock(), total_orders=len(orders))

        for order in orders:
            order_id = str(order.get("id"))
            customer_name = order.get("customerName") or "N/A"

            if order.get("migratedTo"):
                report.not_migratable.append(NotMigratable(
                    order_id=order_id,
                    customer_name=customer_name,
                    reason=f"Already migrated to {order['migratedTo']}",
                ))
                continue

            if not usable_name(order.get("customerName")) and not normalize_phone(order.get("customerPhone")):
                report.not_migratable.append(NotMigratable(
                    order_id=order_id,
                    customer_name=customer_name,
                    reason="No customer name or phone number",
                ))
                continue

            best, count = await self._best_candidate(order, profiles)
            if best is None:
                report.not_migratable.append(NotMigratable(
                    order_id=order_id, customer_name=customer_name, reason="No matching customer found",
                ))
            elif best.confidence < self.min_confidence:
                report.not_migratable.append(NotMigratable(
                    order_id=order_id,
                    customer_name=customer_name,
                    reason=f"Low confidence match ({best.confidence})",
                ))
            else:
                report.migratable.append(MigrationMatch(
                    order_id=order_id,
                    customer_name=customer_name,
                    best_match_profile_id=best.profile_id,
                    best_match_name=best.profile.get("displayName") or "",
                    best_match_confidence=best.confidence,
                    matches=count,
                    match_reason="+".join(best.reasons),
                ))

        logger.info(
            f"📋 Migration report: {len(report.migratable)} migratable, "
            f"{len(report.not_migratable)} not migratable of {report.total_orders} orders"
        )
        return report

    def _check_fresh(self, report: MigrationReport) -> None:
        generated = report.generated_at
        if generated.tzinfo is None:
            generated = generated.replace(tzinfo=timezone.utc)
        age = (self.clock() - generated).total_seconds()
        if age > self.max_report_age_seconds:
            raise StaleReportError(
                f"Migration report is {int(age)}s old (limit {self.max_report_age_seconds}s); "
                "generate a new one",
                detail={"ageSeconds": int(age)},
            )

    async def migrate_all(self, report: Any) -> MigrationStats:
        """
        Apply a fresh report.

        Orders already linked to a profile are skipped. A failure on one order
        is counted and the rest continue.
        """
        report = parse_model(MigrationReport, report)
        self._check_fresh(report)

        orders = {str(o.get("id")): o for o in await self.data.orders.list_orders()}
        stats = MigrationStats()

        for match in report.migratable:
            stats.processed += 1
            order = orders.get(match.order_id)

            if order is not None and order.get("migratedTo"):
                stats.skipped += 1
                continue

            try:
                if order is None:
                    raise LookupError(f"Order {match.order_id} no longer exists")

                entry = {
                    **{k: v for k, v in order.items() if k not in ("id", "migratedTo", "migratedAt")},
                    "customerName": order.get("customerName") or "Customer",
                    "originalOrderId": match.order_id,
                    "migratedAt": now_iso(),
                }
                await self.profiles.append_order(match.best_match_profile_id, entry)

                if await self.data.orders.mark_migrated(match.order_id, match.best_match_profile_id):
                    stats.migrated += 1
                    logger.info(
                        f"Migrated order {match.order_id} to {match.best_match_name or match.best_match_profile_id} "
                        f"(confidence: {match.best_match_confidence})"
                    )
                else:
                    stats.skipped += 1
            except Exception as e:
                stats.errors += 1
                logger.error(f"❌ Error migrating order {match.order_id}: {e}")

        logger.info(
            f"Migration completed: {stats.processed} processed, {stats.migrated} migrated, "
            f"{stats.skipped} skipped, {stats.errors} errors"
        )
        return stats
