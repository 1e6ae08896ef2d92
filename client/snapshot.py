"""Durable JSON snapshot of the client cart, surviving restarts."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .store import CartStore, ClientCartItem


logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 2


class CartSnapshot:
    """File-backed storage of the store's items."""

    def __init__(self, data_file: Path) -> None:
        self._data_file = Path(data_file)

    @property
    def path(self) -> Path:
        return self._data_file

    def load(self) -> List[ClientCartItem]:
        return self.load_state()[1]

    def load_state(self) -> Tuple[Optional[str], List[ClientCartItem]]:
        """Return (owner user id, items); owner is None for a guest cart."""
        if not self._data_file.exists():
            return None, []
        text = self._data_file.read_text(encoding="utf-8")
        if not text.strip():
            return None, []
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"cart snapshot is not valid JSON: {self._data_file}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
            raise ValueError("cart snapshot has unexpected shape, expected {'items': [...]}")
        owner = payload.get("owner") or None
        items = []
        for entry in payload["items"]:
            try:
                if isinstance(entry, dict) and "guest" not in entry:
                    # version 1 files carry no flag
                    entry = {**entry, "guest": owner is None}
                items.append(ClientCartItem.from_dict(entry))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("skipping unreadable cart snapshot entry %r: %s", entry, exc)
        return owner, items

    def save(self, items: List[ClientCartItem], owner: Optional[str] = None) -> None:
        data: Dict = {"version": SNAPSHOT_VERSION, "owner": owner, "items": [i.to_dict() for i in items]}
        self._data_file.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._data_file.with_suffix(self._data_file.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        tmp.replace(self._data_file)

    def clear(self) -> None:
        if self._data_file.exists():
            self._data_file.unlink()

    def attach(self, store: CartStore) -> Callable[[], None]:
        """Restore ``store`` from disk, then save on every change.

        Returns the unsubscribe callable for the save hook.
        """
        owner, restored = self.load_state()
        if owner is not None:
            store.set_owner(owner)
        if restored:
            store.set_items(restored)
        return store.subscribe(lambda s: self.save(s.items, s.owner))
