"""Commissions repository - append-only revenue ledger.

Uses raw SQL with psycopg2 (no ORM). Rows are inserted as charges or
reversals; the only in-place change is linking a charge to a payout, once.
"""

from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

from hotelcore.infra.db import row_to_dict

COMMISSION_COLUMNS = (
    "id",
    "booking_id",
    "payment_id",
    "kind",
    "reverses_commission_id",
    "base_cents",
    "commission_rate",
    "commission_cents",
    "platform_fee_cents",
    "hotel_earnings_cents",
    "currency",
    "status",
    "payout_id",
    "created_at",
)

_SELECT = ", ".join(COMMISSION_COLUMNS)


def _normalize(row) -> dict | None:
    commission = row_to_dict(COMMISSION_COLUMNS, row)
    if commission is None:
        return None
    for key in ("id", "booking_id", "payment_id", "reverses_commission_id"):
        if commission[key] is not None:
            commission[key] = str(commission[key])
    return commission


def insert_charge(
    cur: PgCursor,
    *,
    booking_id: str,
    payment_id: str,
    base_cents: int,
    commission_rate: Decimal,
    commission_cents: int,
    platform_fee_cents: int,
    hotel_earnings_cents: int,
    currency: str,
) -> dict | None:
    """Insert the earned charge for a (booking, payment) pair.

    Returns:
        The new charge, or None if one already exists for the pair.
    """
    cur.execute(
        f"""
        INSERT INTO commissions (
            booking_id, payment_id, kind, base_cents, commission_rate,
            commission_cents, platform_fee_cents, hotel_earnings_cents,
            currency, status
        )
        VALUES (%s, %s, 'charge', %s, %s, %s, %s, %s, %s, 'earned')
        ON CONFLICT (booking_id, payment_id) WHERE kind = 'charge' DO NOTHING
        RETURNING {_SELECT}
        """,
        (
            booking_id,
            payment_id,
            base_cents,
            commission_rate,
            commission_cents,
            platform_fee_cents,
            hotel_earnings_cents,
            currency,
        ),
    )
    return _normalize(cur.fetchone())


def insert_reversal(cur: PgCursor, *, charge: dict) -> dict | None:
    """Append a reversal that negates a charge.

    Returns:
        The reversal, or None if the charge was already reversed.
    """
    cur.execute(
        f"""
        INSERT INTO commissions (
            booking_id, payment_id, kind, reverses_commission_id, base_cents,
            commission_rate, commission_cents, platform_fee_cents,
            hotel_earnings_cents, currency, status
        )
        VALUES (%s, %s, 'reversal', %s, %s, %s, %s, %s, %s, %s, 'reversed')
        ON CONFLICT (reverses_commission_id) WHERE kind = 'reversal' DO NOTHING
        RETURNING {_SELECT}
        """,
        (
            charge["booking_id"],
            charge["payment_id"],
            charge["id"],
            -charge["base_cents"],
            charge["commission_rate"],
            -charge["commission_cents"],
            -charge["platform_fee_cents"],
            -charge["hotel_earnings_cents"],
            charge["currency"],
        ),
    )
    return _normalize(cur.fetchone())


def list_unreversed_charges(cur: PgCursor, booking_id: str) -> list[dict]:
    cur.execute(
        f"""
        SELECT {_SELECT} FROM commissions c
        WHERE c.booking_id = %s
          AND c.kind = 'charge'
          AND NOT EXISTS (
              SELECT 1 FROM commissions r
              WHERE r.kind = 'reversal' AND r.reverses_commission_id = c.id
          )
        ORDER BY c.created_at
        """,
        (booking_id,),
    )
    return [_normalize(row) for row in cur.fetchall()]


def get_commission(cur: PgCursor, commission_id: str, *, lock: bool = False) -> dict | None:
    suffix = " FOR UPDATE" if lock else ""
    cur.execute(
        f"SELECT {_SELECT} FROM commissions WHERE id = %s{suffix}",
        (commission_id,),
    )
    return _normalize(cur.fetchone())


def set_payout(cur: PgCursor, commission_id: str, payout_id: str) -> dict | None:
    """Link an earned charge to a payout.

    Guard: payout_id IS NULL, so a charge is paid out at most once.
    """
    cur.execute(
        f"""
        UPDATE commissions
        SET payout_id = %s
        WHERE id = %s
          AND kind = 'charge'
          AND status = 'earned'
          AND payout_id IS NULL
        RETURNING {_SELECT}
        """,
        (payout_id, commission_id),
    )
    return _normalize(cur.fetchone())
