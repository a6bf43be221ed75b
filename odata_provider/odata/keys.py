"""
odata_provider.odata.keys - Key and literal encoding
=====================================================

Decides how a value is written into an OData URL or filter expression,
based on the declared type of the property it belongs to.
"""

from __future__ import annotations

import uuid
from typing import Any
from urllib.parse import quote

from odata_provider.core.errors import InvalidKeyError
from odata_provider.odata.metadata import EntitySet

# Declared types written as bare literals: 1, 42, 01234567-89ab-...
LITERAL_TYPES = frozenset({
    "Edm.Byte",
    "Edm.SByte",
    "Edm.Int16",
    "Edm.Int32",
    "Edm.Int64",
    "Edm.Guid",
})

GUID_TYPE = "Edm.Guid"


def escape_odata_literal(value: str) -> str:
    """
    Escape a string value for use inside single quotes.

    Examples
    --------
    >>> escape_odata_literal("O'Brien")
    "O''Brien"
    """
    return value.replace("'", "''")


def quote_literal(value: Any) -> str:
    """Render ``value`` as a quoted OData string literal."""
    return f"'{escape_odata_literal(str(value))}'"


def is_literal_type(type_name: str) -> bool:
    return type_name in LITERAL_TYPES


def bare_literal(type_name: str, value: Any) -> str:
    """
    Validate and render an integer or GUID value.

    Raises InvalidKeyError when ``value`` is not of the declared type, so
    that no caller-supplied text reaches the URL unchecked.
    """
    if type_name == GUID_TYPE:
        try:
            return str(uuid.UUID(str(value)))
        except ValueError:
            raise InvalidKeyError(value, type_name) from None
    if isinstance(value, bool):
        raise InvalidKeyError(value, type_name)
    if isinstance(value, int):
        return str(value)
    try:
        return str(int(str(value).strip()))
    except ValueError:
        raise InvalidKeyError(value, type_name) from None


def encode_key(entity_set: EntitySet, property_name: str, value: Any) -> str:
    """
    Encode ``value`` of ``property_name`` as an OData key/filter token.

    Integer and GUID properties are validated and emitted bare; every
    other declared type is quoted. Properties the schema does not declare
    fall back to the bare form.

    Parameters
    ----------
    entity_set : EntitySet
        The entity set whose type declares the property
    property_name : str
        Property the value belongs to
    value : Any
        Raw value, e.g. ``1`` or ``"ALFKI"``

    Returns
    -------
    str
        ``1`` or ``'ALFKI'``
    """
    prop = entity_set.entity_type.find_property(property_name)
    if prop is None:
        return str(value)
    if is_literal_type(prop.type):
        return bare_literal(prop.type, value)
    return quote_literal(value)


def key_segment(entity_set: EntitySet, value: Any) -> str:
    """
    Build the path segment addressing one entity: ``Customers('ALFKI')``.

    The key token is percent-encoded, so ``A#B`` is sent as
    ``Customers('A%23B')``. Quotes stay literal.
    """
    token = encode_key(entity_set, entity_set.entity_type.key.name, value)
    return "%s(%s)" % (entity_set.url_segment, quote(token, safe="'"))
