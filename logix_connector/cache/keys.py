"""Cache key derivation.

A key is ``<tenant_id>_<field ids sorted and comma joined>``. Sorting makes
the key independent of the order fields were requested in. Tenant ids may not
contain the ``_`` delimiter and field ids may not contain ``,``, so splitting
on the first ``_`` always recovers the original parameters.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

KEY_DELIMITER = "_"
FIELD_DELIMITER = ","


def build_key(tenant_id: str, field_ids: Iterable[str]) -> str:
    tenant_id = str(tenant_id)
    fields = [str(f) for f in field_ids]
    if not tenant_id:
        raise ValueError("tenant_id must not be empty")
    if KEY_DELIMITER in tenant_id:
        raise ValueError(f"tenant_id must not contain {KEY_DELIMITER!r}: {tenant_id}")
    for field in fields:
        if FIELD_DELIMITER in field:
            raise ValueError(f"field id must not contain {FIELD_DELIMITER!r}: {field}")
    return f"{tenant_id}{KEY_DELIMITER}{FIELD_DELIMITER.join(sorted(fields))}"


def parse_key(key: str) -> Tuple[str, List[str]]:
    """Split ``key`` into (tenant_id, field_ids).

    An empty field part, as written by ``build_key(tenant, [])``, yields an
    empty field list.

    Raises:
        ValueError: if the key has no tenant delimiter or no tenant id
    """
    tenant_id, sep, fields_csv = key.partition(KEY_DELIMITER)
    if not sep or not tenant_id:
        raise ValueError(f"No tenant id found in key: {key}")
    if not fields_csv:
        return tenant_id, []
    return tenant_id, fields_csv.split(FIELD_DELIMITER)
