# app/domain/line_identity.py
"""
Tozsamosc linii koszyka / wishlisty.

Dwie linie sa "ta sama linia" gdy maja ten sam product_id i te same opcje:
kolor, rozmiar, wariant i custom_selections. Brak pola == None == "" == {}.
Wariant i custom_selections porownywane strukturalnie (kolejnosc kluczy
bez znaczenia, 30 == 30.0).
"""
from decimal import Decimal
from typing import Any, Dict, Tuple

from app.domain.errors import ValidationError

OPTION_FIELDS = ("selected_color", "selected_size", "selected_variant", "custom_selections")


def _get(candidate: Any, name: str) -> Any:
    if isinstance(candidate, dict):
        return candidate.get(name)
    return getattr(candidate, name, None)


def _plain(value: Any) -> Any:
    #pydantic -> dict
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


def _blank_to_none(value: Any) -> Any:
    if value is None or value == "":
        return None
    return value


def normalize_mapping(value: Any) -> Dict[str, Any] | None:
    #{} i mapa z samymi None zapisywane jako NULL, tak jak "" dla koloru i rozmiaru
    value = _plain(value)
    if not value:
        return None
    cleaned = {k: _plain(v) for k, v in dict(value).items() if v is not None}
    return cleaned or None


def _canonical(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(sorted((str(k), _canonical(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(_canonical(v) for v in value)
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    return value


def product_id_of(candidate: Any) -> int | None:
    pid = _get(candidate, "product_id")
    if pid is None or pid == "":
        return None
    try:
        return int(pid)
    except (TypeError, ValueError):
        raise ValidationError("Product ID is required", {"product_id": "must be an integer"})


def line_options(candidate: Any) -> Dict[str, Any]:
    """Opcje linii w postaci do zapisu w bazie."""
    return {
        "selected_color": _blank_to_none(_get(candidate, "selected_color")),
        "selected_size": _blank_to_none(_get(candidate, "selected_size")),
        "selected_variant": normalize_mapping(_get(candidate, "selected_variant")),
        "custom_selections": normalize_mapping(_get(candidate, "custom_selections")),
    }


def identity_key(candidate: Any) -> Tuple:
    opts = line_options(candidate)
    return (
        product_id_of(candidate),
        opts["selected_color"],
        opts["selected_size"],
        _canonical(opts["selected_variant"]),
        _canonical(opts["custom_selections"]),
    )


def same_line(a: Any, b: Any) -> bool:
    return identity_key(a) == identity_key(b)
