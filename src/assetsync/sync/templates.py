"""Destination path templating for imported files.

Supported placeholders in a folder template:
- {tag}: first asset tag that is a sync tag, else the first tag, else
  "uncategorized"
- {dateCreated:YYYY}, {dateCreated:MM}, {dateCreated:DD}
- {dateModified:YYYY}, {dateModified:MM}, {dateModified:DD}
- {name}: asset name
- {type}: asset type (default "file")

Tag and name values are reduced to lowercase ``[a-z0-9-]``.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from assetsync.clients.types import DamAsset

DEFAULT_FOLDER_TEMPLATE = "dam/{tag}"
FALLBACK_FOLDER = "dam"
UNCATEGORIZED = "uncategorized"

_UNSAFE_CHARS = re.compile(r"[^a-z0-9-]")
_DASH_RUNS = re.compile(r"-+")
_SLASH_RUNS = re.compile(r"/+")
_DATE_PLACEHOLDER = re.compile(r"\{(dateCreated|dateModified):(YYYY|MM|DD)\}")


def sanitize_for_path(value: str) -> str:
    """Lowercase and replace anything outside [a-z0-9-] with dashes."""
    value = _UNSAFE_CHARS.sub("-", value.lower())
    return _DASH_RUNS.sub("-", value).strip("-")


def matching_tag(asset_tags: Sequence[str], sync_tags: Sequence[str]) -> str:
    """Tag used for the {tag} placeholder."""
    for tag in asset_tags:
        if tag in sync_tags:
            return tag
    return asset_tags[0] if asset_tags else UNCATEGORIZED


def _date_part(value: datetime | None, part: str) -> str:
    if value is None:
        return ""
    if part == "YYYY":
        return f"{value.year:04d}"
    if part == "MM":
        return f"{value.month:02d}"
    return f"{value.day:02d}"


def render_folder(template: str, asset: DamAsset, sync_tags: Sequence[str]) -> str:
    """Expand a folder template for an asset.

    Args:
        template: Template such as "dam/{tag}/{dateCreated:YYYY}".
        asset: Asset metadata.
        sync_tags: Tenant sync tags, used to pick {tag}.

    Returns:
        Folder path without trailing slash; "dam" if it expands to nothing.
    """
    dates = {"dateCreated": asset.date_created, "dateModified": asset.date_modified}

    result = template.replace("{tag}", sanitize_for_path(matching_tag(asset.tags, sync_tags)))
    result = _DATE_PLACEHOLDER.sub(lambda m: _date_part(dates[m.group(1)], m.group(2)), result)
    result = result.replace("{name}", sanitize_for_path(asset.name or "asset"))
    result = result.replace("{type}", asset.type or "file")

    result = _SLASH_RUNS.sub("/", result).rstrip("/")
    return result or FALLBACK_FOLDER


def apply_affixes(filename: str, prefix: str | None = None, suffix: str | None = None) -> str:
    """Prepend prefix; insert suffix before the extension."""
    if prefix:
        filename = f"{prefix}{filename}"
    if suffix:
        stem, dot, ext = filename.rpartition(".")
        if dot and stem:
            filename = f"{stem}{suffix}.{ext}"
        else:
            filename = f"{filename}{suffix}"
    return filename


def build_file_path(
    asset: DamAsset,
    sync_tags: Sequence[str],
    template: str | None = None,
    prefix: str | None = None,
    suffix: str | None = None,
) -> str:
    """Full destination path: rendered folder plus affixed filename."""
    folder = render_folder(template or DEFAULT_FOLDER_TEMPLATE, asset, sync_tags)
    return f"{folder}/{apply_affixes(asset.filename, prefix, suffix)}"
