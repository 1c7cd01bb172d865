import re

from ..extensions import db


def parse_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def next_sequential_code(model, column, tenant_id, prefix, width):
    """Return the next ``<prefix><zero padded number>`` code for a tenant.

    Plain max+1 over every code the tenant ever issued (soft-deleted rows
    included); two concurrent inserts can pick the same code and the unique
    constraint rejects the loser.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    codes = db.session.execute(
        db.select(column).where(model.tenant_id == tenant_id, column.like(f"{prefix}%"))
    ).scalars()

    highest = 0
    for code in codes:
        match = pattern.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))

    return f"{prefix}{highest + 1:0{width}d}"

