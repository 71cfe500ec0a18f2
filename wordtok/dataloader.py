from abc import ABC, abstractmethod
import logging
import os
from typing import Literal, override

import torch
from torch import Tensor
from torch.utils.data import Dataset

from .tokenizer.word_tokenizer import WordTokenizer


logger = logging.getLogger(__name__)


class TextProvider(ABC):
    @abstractmethod
    def get_text(self) -> str:
        """This method fetches the text from the underlying storage"""


class FileTextProvider(TextProvider):

    def __init__(self, file_path: str) -> None:
        if not os.path.exists(file_path):
            raise ValueError(f"File path {file_path} does not exist")

        with open(file_path, "r", encoding="utf-8") as f:
            self._data = f.read()

    @override
    def get_text(self) -> str:
        return self._data


class FolderTextProvider(TextProvider):

    def __init__(self, dir_path: str) -> None:
        if not os.path.exists(dir_path):
            raise ValueError(f"Directory path {dir_path} does not exist")

        if not os.path.isdir(dir_path):
            raise ValueError(f"Directory path {dir_path} is not a directory")

        chunks = []
        for root, dirs, files in os.walk(dir_path):
            dirs[:] = sorted(d for d in dirs if not d.startswith("."))
            for file_name in sorted(files):
                if not file_name.startswith("."):
                    file_path = os.path.join(root, file_name)
                    logger.info("Loading data from %s", file_path)
                    with open(file_path, "r", encoding="utf-8") as f:
                        chunks.append(f.read())
        self._data = "\n".join(chunks)

    @override
    def get_text(self) -> str:
        return self._data


def get_text_provider(path: str) -> TextProvider:
    if os.path.isdir(path):
        return FolderTextProvider(path)
    return FileTextProvider(path)


def pad_sequences(sequences: list[list[int]], length: int, pad_id: int) -> Tensor:
    """Right-pad every sequence with pad_id, or cut it, to exactly length IDs."""
    padded = torch.full((len(sequences), length), pad_id, dtype=torch.long)
    for row, sequence in enumerate(sequences):
        sequence = sequence[:length]
        padded[row, :len(sequence)] = torch.tensor(sequence, dtype=torch.long)
    return padded


class EncodedLinesDataset(Dataset[tuple[Tensor, Tensor]]):
    def __init__(
        self,
        text_provider: TextProvider,
        tokenizer: WordTokenizer,
        block_size: int,
        split: Literal["train", "validation", "test"],
        train_ratio: float = 0.8,
        val_ratio: float = 0.1,
    ) -> None:
        self.tokenizer = tokenizer
        self.block_size = block_size

        lines = [line for line in text_provider.get_text().splitlines() if line.strip()]

        total_size = len(lines)
        train_size = int(total_size * train_ratio)
        val_size = int(total_size * val_ratio)

        if split == "train":
            lines = lines[:train_size]
        elif split == "validation":
            lines = lines[train_size : train_size + val_size]
        elif split == "test":
            lines = lines[train_size + val_size :]
        else:
            raise ValueError(f"Invalid split: {split}. Must be 'train', 'validation', or 'test'.")

        # One extra position so that input and target are both block_size long
        encoded = [tokenizer.encode(line) for line in lines]
        self.data = pad_sequences(encoded, block_size + 1, tokenizer.pad_id)

    def __len__(self) -> int:
        return len(self.data)

    def __getitem__(self, idx: int) -> tuple[Tensor, Tensor]:
        row = self.data[idx]
        return row[:-1], row[1:]
