from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence

import requests
import yaml

from doodlerace.pairing.types import Drawing


class DrawingStoreError(RuntimeError):
    pass


class DrawingStore(Protocol):
    def list_drawings(self) -> List[Drawing]: ...


def _parse_items(items: Any, source: str) -> List[Drawing]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise DrawingStoreError(f"Expected a list of drawings from {source}")

    out: List[Drawing] = []
    for item in items:
        if not isinstance(item, dict) or "id" not in item or "url" not in item:
            # partially uploaded blobs show up without a url; skip them
            continue
        out.append(Drawing(id=str(item["id"]), url=str(item["url"])))
    return out


class HttpDrawingStore:
    """
    GET <base_url>/api/blobs -> {"items": [{"id": ..., "url": ...}, ...]}
    """

    def __init__(self, base_url: str, *, timeout_s: float = 5.0,
                 session: Optional[requests.Session] = None) -> None:
        self.url = base_url.rstrip("/") + "/api/blobs"
        self.timeout_s = timeout_s
        self.session = session or requests.Session()

    def list_drawings(self) -> List[Drawing]:
        try:
            resp = self.session.get(self.url, timeout=self.timeout_s, headers={"Cache-Control": "no-store"})
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise DrawingStoreError(f"Failed to fetch drawings: {e}") from e
        except ValueError as e:
            raise DrawingStoreError(f"Drawing list is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise DrawingStoreError("Drawing list response is not an object")
        return _parse_items(data.get("items"), self.url)


class YamlDrawingStore:
    """
    Offline manifest:

      items:
        - id: cat
          url: file:///srv/drawings/cat.png
    """

    def __init__(self, manifest_path: Path) -> None:
        self.manifest_path = Path(manifest_path)

    def list_drawings(self) -> List[Drawing]:
        try:
            data = yaml.safe_load(self.manifest_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise DrawingStoreError(f"Failed to read {self.manifest_path}: {e}") from e
        items = data.get("items") if isinstance(data, dict) else data
        return _parse_items(items, str(self.manifest_path))


class StaticDrawingStore:
    def __init__(self, drawings: Sequence[Drawing] = ()) -> None:
        self._drawings = list(drawings)

    def list_drawings(self) -> List[Drawing]:
        return list(self._drawings)
