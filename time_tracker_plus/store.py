from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Iterable, List

log = logging.getLogger(__name__)

RenameListener = Callable[[str, str], None]


class FolderStore:
    """Document store over a folder of text files.

    Documents are addressed by POSIX paths relative to ``root``.
    """

    def __init__(self, root: Path, suffixes: Iterable[str] = (".md",)):
        self.root = Path(root)
        self.suffixes = tuple(suffixes)
        self._rename_listeners: List[RenameListener] = []

    def _resolve(self, path: str) -> Path:
        return self.root / path

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: str) -> str:
        with self._resolve(path).open("r", encoding="utf-8", newline="") as f:
            return f.read()

    def write(self, path: str, text: str, create: bool = False) -> bool:
        """Replace a document's content whole. Missing documents are skipped
        unless ``create`` is set."""
        target = self._resolve(path)
        if not target.is_file():
            if not create:
                log.debug("not writing %s: no such document", path)
                return False
            target.parent.mkdir(parents=True, exist_ok=True)

        tmp = tempfile.NamedTemporaryFile(
            mode="w", encoding="utf-8", newline="", delete=False, dir=target.parent, suffix=".tmp"
        )
        try:
            with tmp:
                tmp.write(text)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp.name, target)
        except BaseException:
            if os.path.exists(tmp.name):
                os.remove(tmp.name)
            raise
        return True

    def list_documents(self) -> List[str]:
        if not self.root.is_dir():
            return []
        paths = [
            p.relative_to(self.root).as_posix()
            for p in self.root.rglob("*")
            if p.is_file() and p.suffix in self.suffixes
        ]
        return sorted(paths)

    # --- rename events ---
    def on_rename(self, listener: RenameListener) -> Callable[[], None]:
        """Subscribe to ``(old_path, new_path)`` events; returns the unsubscribe call."""
        self._rename_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._rename_listeners:
                self._rename_listeners.remove(listener)

        return unsubscribe

    def rename(self, old_path: str, new_path: str) -> None:
        target = self._resolve(new_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        os.replace(self._resolve(old_path), target)
        for listener in list(self._rename_listeners):
            listener(old_path, new_path)
