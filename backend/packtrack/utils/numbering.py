"""Load number generation.

Format:  {siteCode}{YY}{MM}{DD}{suffix}

The first load of a site-day gets no suffix, the second ``A``, the third
``B`` and so on. After ``Z`` the suffix grows like spreadsheet columns
(``AA``, ``AB`` ... ``AZ``, ``BA``). There is no sequence table: the next
number is derived from the numbers already stored under the day's prefix.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.models.load import Load


def load_number_prefix(site_code: str, dispatch_date: date) -> str:
    return f"{site_code}{dispatch_date.strftime('%y%m%d')}"


def suffix_to_ordinal(suffix: str) -> int | None:
    """Empty → 0, "A" → 1 ... "Z" → 26, "AA" → 27. None unless all A-Z."""
    ordinal = 0
    for ch in suffix:
        if not "A" <= ch <= "Z":
            return None
        ordinal = ordinal * 26 + (ord(ch) - ord("A") + 1)
    return ordinal


def ordinal_to_suffix(ordinal: int) -> str:
    """Inverse of suffix_to_ordinal."""
    letters = []
    while ordinal > 0:
        ordinal, rem = divmod(ordinal - 1, 26)
        letters.append(chr(ord("A") + rem))
    return "".join(reversed(letters))


def next_load_number(prefix: str, existing: list[str]) -> str:
    """Pick the number after the highest one already issued under ``prefix``.

    Numbers whose remainder is not purely A-Z belong to a different site
    whose code merely starts with this one (``BV`` vs ``BV2``) and are
    ignored.
    """
    highest = -1
    for number in existing:
        if not number.startswith(prefix):
            continue
        ordinal = suffix_to_ordinal(number[len(prefix):])
        if ordinal is not None and ordinal > highest:
            highest = ordinal
    return prefix + ordinal_to_suffix(highest + 1)


async def generate_load_number(
    db: AsyncSession,
    site_code: str,
    dispatch_date: date,
) -> str:
    """Generate the next load number for a site and dispatch date.

    Two requests racing for the same site-day can compute the same number;
    the unique constraint on ``loads.load_number`` rejects the loser with a
    409.
    """
    prefix = load_number_prefix(site_code, dispatch_date)
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    result = await db.execute(
        select(Load.load_number).where(Load.load_number.like(f"{escaped}%", escape="\\"))
    )
    return next_load_number(prefix, list(result.scalars().all()))
