import argparse
import json
import sys
from typing import List, Tuple

from share_codec import decompress
from share_errors import DecodeError
from share_fragment import decode_fragments, split_url
from share_schema import FRAGMENT_CONF, FRAGMENT_CONTENT


def inspect_link(link: str) -> Tuple[List[str], bool]:
    """
    Decodes a share URL (or a bare fragment) into printable lines.
    Returns (lines, ok); ok is False when any blob fails to decode.
    """
    if "#" in link:
        _, fragment = split_url(link)
    else:
        fragment = link
    params = decode_fragments(fragment)

    lines = []
    ok = True
    if not params:
        return ["No shared state in link."], True

    for name, payload in params.items():
        # --- Literal pairs (default flag, log, tab, unknown keys) ---
        if name not in (FRAGMENT_CONF, FRAGMENT_CONTENT):
            lines.append(f"{name} = {payload}")
            continue

        # --- Compressed blobs ---
        lines.append(f"{name}: {len(payload)} chars")
        try:
            decoded = decompress(payload)
        except DecodeError as e:
            ok = False
            lines.append(f"  ERROR ({e.stage}): {e}")
            continue
        pretty = json.dumps(decoded, indent=2, ensure_ascii=False)
        lines.extend("  " + row for row in pretty.splitlines())

    return lines, ok


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Decode a share link into its fragments.")
    parser.add_argument("link", help="Full share URL or the part after '#'")
    args = parser.parse_args(argv)

    lines, ok = inspect_link(args.link)
    for line in lines:
        print(line)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
