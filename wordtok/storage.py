from abc import ABC, abstractmethod
from collections.abc import Mapping
import json
import os
import tempfile
from typing import override


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under key, or None when it is absent"""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, raising if it could not be stored"""

    def set_many(self, items: Mapping[str, str]) -> None:
        for key, value in items.items():
            self.set(key, value)


class InMemoryStore(KeyValueStore):

    def __init__(self, data: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(data or {})

    @override
    def get(self, key: str) -> str | None:
        return self._data.get(key)

    @override
    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __repr__(self) -> str:
        return f"InMemoryStore(keys={sorted(self._data)})"


class JsonFileStore(KeyValueStore):
    """
    Keeps every key in a single JSON document on disk.

    Writes go to a temporary file next to the target which then replaces it,
    so readers see either the previous document or the new one.
    """

    def __init__(self, file_path: str) -> None:
        self._file_path = file_path

    @property
    def file_path(self) -> str:
        return self._file_path

    def _read(self) -> dict[str, str]:
        if not os.path.exists(self._file_path):
            return {}

        with open(self._file_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"{self._file_path} does not hold a JSON object")
        return data

    def _write(self, data: Mapping[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self._file_path))
        os.makedirs(directory, exist_ok=True)

        tmp_file = tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=directory,
                                               prefix=".", suffix=".tmp", delete=False)
        try:
            with tmp_file as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_file.name, self._file_path)
        except BaseException:
            os.unlink(tmp_file.name)
            raise

    @override
    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"Value of {key!r} in {self._file_path} is not a string")
        return value

    @override
    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    @override
    def set_many(self, items: Mapping[str, str]) -> None:
        data = self._read()
        data.update(items)
        self._write(data)

    def __repr__(self) -> str:
        return f"JsonFileStore({self._file_path!r})"
