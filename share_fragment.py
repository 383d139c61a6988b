"""
Flat `name=payload&name=payload` wire format for the URL fragment.

Not urllib.parse.parse_qs: payloads are opaque codec
tokens that must not be percent-decoded ('+' would become a space). The codec
guarantees its tokens never contain '&' and only use '=' as trailing padding,
so a pair is split on its FIRST '=' and nothing is ever unescaped.
"""

from typing import Dict, Iterable, Tuple

from share_schema import WireFragment

PAIR_SEPARATOR = "&"
KEY_SEPARATOR = "="


def encode_fragments(fragments: Iterable[WireFragment]) -> str:
    """Joins fragments in the given order. Rejects anything that would not split back."""
    parts = []
    for fragment in fragments:
        if not fragment.name or KEY_SEPARATOR in fragment.name or PAIR_SEPARATOR in fragment.name:
            raise ValueError(f"Invalid fragment name: {fragment.name!r}")
        if PAIR_SEPARATOR in fragment.payload:
            raise ValueError(f"Fragment {fragment.name!r} payload contains {PAIR_SEPARATOR!r}")
        parts.append(fragment.render())
    return PAIR_SEPARATOR.join(parts)


def decode_fragments(fragment: str) -> Dict[str, str]:
    """
    Best-effort parse of a URL fragment into {name: payload}.

    Unknown names are kept for the caller to ignore. Pieces with no '=' or
    an empty name are dropped instead of failing the whole parse, since users
    truncate and mis-paste links. A repeated name keeps its last value.
    """
    params: Dict[str, str] = {}
    if not fragment:
        return params
    if fragment.startswith("#"):
        fragment = fragment[1:]

    for piece in fragment.split(PAIR_SEPARATOR):
        if KEY_SEPARATOR not in piece:
            continue
        name, _, payload = piece.partition(KEY_SEPARATOR)
        if not name:
            continue
        params[name] = payload
    return params


def split_url(url: str) -> Tuple[str, str]:
    """Splits a URL into (everything before '#', fragment without '#')."""
    base, _, fragment = url.partition("#")
    return base, fragment


def join_url(base: str, fragment: str) -> str:
    base, _ = split_url(base)
    return f"{base}#{fragment}"
