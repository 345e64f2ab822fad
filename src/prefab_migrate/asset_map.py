"""Match asset identifiers between two asset databases by file name.

The source table is keyed by identifier with a ``url`` per asset
(``db://assets/ui/icon.png``); the target table is keyed by identifier with a
``relativePath``. Assets are matched on their file name; the result feeds the
global substitution pass.

Usage:
    prefab-asset-map source-assets.json target-assets.json -o mapping.json
"""

from __future__ import annotations

import argparse
import json
import logging
import posixpath
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DB_URL_PREFIX = "db://"
SUB_ASSET_SEPARATOR = "@"


@dataclass
class AssetMatch:
    target_uuid: str
    filename: str
    source_url: str


@dataclass
class UnmatchedAsset:
    source_uuid: str
    filename: str
    source_url: str


@dataclass
class AssetMapping:
    """Result of matching two asset tables."""

    mapping: dict[str, AssetMatch] = field(default_factory=dict)  # source uuid -> match
    unmatched: list[UnmatchedAsset] = field(default_factory=list)

    def pairs(self) -> dict[str, str]:
        """``{source_uuid: target_uuid}``, the form substitution planning takes."""
        return {source: match.target_uuid for source, match in self.mapping.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "mappingCount": len(self.mapping),
            "unmatchedCount": len(self.unmatched),
            "mapping": {source: asdict(match) for source, match in self.mapping.items()},
            "unmatched": [asdict(item) for item in self.unmatched],
        }


def extract_filename(url_or_path: str) -> str:
    """Last segment of a ``db://`` URL, otherwise the basename of a path."""
    if url_or_path.startswith(DB_URL_PREFIX):
        return url_or_path.split("/")[-1]
    return posixpath.basename(url_or_path.replace("\\", "/"))


def build_target_index(target_assets: dict[str, Any]) -> dict[str, str]:
    """Map file name to identifier. When two assets share a name, the later one wins."""
    index: dict[str, str] = {}
    for uuid, info in target_assets.items():
        if isinstance(info, dict) and info.get("relativePath"):
            index[extract_filename(info["relativePath"])] = uuid
    return index


def generate_uuid_mapping(source_assets: dict[str, Any], target_assets: dict[str, Any]) -> AssetMapping:
    """Pair every source asset with the target asset of the same file name.

    A sub-asset name such as ``icon.png@f9941`` is first looked up as-is and,
    failing that, by the part before ``@``. Sources without a ``url`` are
    ignored.
    """
    index = build_target_index(target_assets)
    result = AssetMapping()

    for source_uuid, info in source_assets.items():
        if not isinstance(info, dict) or not info.get("url"):
            continue
        url = info["url"]
        filename = extract_filename(url)

        target_uuid = index.get(filename)
        if target_uuid is None and SUB_ASSET_SEPARATOR in filename:
            target_uuid = index.get(filename.split(SUB_ASSET_SEPARATOR)[0])

        if target_uuid is not None:
            result.mapping[source_uuid] = AssetMatch(target_uuid, filename, url)
        else:
            result.unmatched.append(UnmatchedAsset(source_uuid, filename, url))

    logger.info(
        "Asset mapping: %d matched, %d unmatched", len(result.mapping), len(result.unmatched)
    )
    return result


def load_asset_tables(source_path: Path, target_path: Path) -> tuple[dict[str, Any], dict[str, Any]]:
    """Read both asset tables.

    Raises:
        OSError: If a file cannot be read.
        json.JSONDecodeError: If a file is not valid JSON.
        ValueError: If a table is not a JSON object.
    """
    tables = []
    for path in (source_path, target_path):
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object keyed by asset id")
        tables.append(data)
    return tables[0], tables[1]


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Match asset identifiers between two asset tables by file name"
    )
    parser.add_argument("source", type=Path, help="Source asset table (uuid -> {url})")
    parser.add_argument("target", type=Path, help="Target asset table (uuid -> {relativePath})")
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=Path("uuid_mapping.json"),
        help="Output mapping file (default: uuid_mapping.json)",
    )

    args = parser.parse_args(argv)

    try:
        source_assets, target_assets = load_asset_tables(args.source, args.target)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = generate_uuid_mapping(source_assets, target_assets)
    args.output.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")

    print(f"Matched: {len(result.mapping)}", file=sys.stderr)
    print(f"Unmatched: {len(result.unmatched)}", file=sys.stderr)
    print(f"Wrote {args.output}", file=sys.stderr)
    if result.unmatched:
        print("\nUnmatched assets (first 10):", file=sys.stderr)
        for item in result.unmatched[:10]:
            print(f"  - {item.filename} ({item.source_uuid})", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
