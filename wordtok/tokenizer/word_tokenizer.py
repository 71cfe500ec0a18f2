import json
import logging
import operator
import re
from collections import Counter
from enum import StrEnum
from typing import Any, override

from ..storage import InMemoryStore, KeyValueStore
from .base_tokenizer import Tokenizer


logger = logging.getLogger(__name__)

WORD_TO_INDEX_KEY = "tokenizerWordToIndex"
INDEX_TO_WORD_KEY = "tokenizerIndexToWord"
VOCAB_SIZE_KEY = "tokenizerVocabSize"

# Hyphens go too, even inside words.
_PUNCTUATION = re.compile(r"""[.,/#!$%^&*;:{}=\-_`~()?"'’‘“”„•]""")
_WHITESPACE = re.compile(r"\s+")
_DECIMAL = re.compile(r"[0-9]+")


class SpecialToken(StrEnum):
    """Reserved tokens, declared in the order of their fixed IDs."""
    PAD = "[PAD]"
    UNK = "[UNK]"
    SOS = "[SOS]"
    EOS = "[EOS]"


SPECIAL_TOKENS: tuple[str, ...] = tuple(token.value for token in SpecialToken)


class VocabFormatError(ValueError):
    pass


def clean_text(text: str) -> str:
    """
    Normalize raw text for vocabulary lookup.

    The text is lowercased, punctuation is removed without replacement and
    whitespace runs are collapsed to a single space, trimmed at both ends.

    Raises:
        TypeError: if text is not a string.
    """
    if not isinstance(text, str):
        raise TypeError(f"Expected text of type str, got {type(text).__name__}")
    cleaned = _PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


def split_words(text: str) -> list[str]:
    return [word for word in clean_text(text).split(" ") if word]


def sort_by_frequency(word_counts: Counter[str]) -> list[str]:
    """Most frequent first, ties broken alphabetically."""
    return sorted(word_counts, key=lambda word: (-word_counts[word], word))


def build_vocab(words: list[str]) -> tuple[dict[str, int], list[str]]:
    index_to_word = list(SPECIAL_TOKENS)
    word_to_index = {word: idx for idx, word in enumerate(index_to_word)}

    for word in sort_by_frequency(Counter(words)):
        if word not in word_to_index:
            word_to_index[word] = len(index_to_word)
            index_to_word.append(word)

    return word_to_index, index_to_word


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_word_to_index(raw: str) -> dict[str, int]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise VocabFormatError(f"{WORD_TO_INDEX_KEY} is not a JSON object")
    for word, idx in data.items():
        if not _is_int(idx):
            raise VocabFormatError(f"ID of word {word!r} is not an integer: {idx!r}")
    return data


def parse_index_to_word(raw: str) -> list[str]:
    data = json.loads(raw)
    if not isinstance(data, list):
        raise VocabFormatError(f"{INDEX_TO_WORD_KEY} is not a JSON array")
    for idx, word in enumerate(data):
        if not isinstance(word, str):
            raise VocabFormatError(f"Word at ID {idx} is not a string: {word!r}")
    return data


def parse_vocab_size(raw: str) -> int:
    if _DECIMAL.fullmatch(raw) is None:
        raise VocabFormatError(f"{VOCAB_SIZE_KEY} is not a decimal integer: {raw!r}")
    return int(raw)


def check_vocab(word_to_index: dict[str, int], index_to_word: list[str], vocab_size: int) -> None:
    """
    Verify that both directions describe the same dense vocabulary.

    Raises:
        VocabFormatError: if sizes disagree, an entry does not point back at
            itself, or the special tokens are not at IDs 0 to 3.
    """
    if not vocab_size == len(word_to_index) == len(index_to_word):
        raise VocabFormatError(
            f"Vocabulary sizes disagree: size={vocab_size}, "
            f"word_to_index={len(word_to_index)}, index_to_word={len(index_to_word)}"
        )

    for word, idx in word_to_index.items():
        if not 0 <= idx < vocab_size or index_to_word[idx] != word:
            raise VocabFormatError(f"Word {word!r} with ID {idx} is not mirrored in {INDEX_TO_WORD_KEY}")

    if tuple(index_to_word[:len(SPECIAL_TOKENS)]) != SPECIAL_TOKENS:
        raise VocabFormatError(f"Special tokens must occupy IDs 0-{len(SPECIAL_TOKENS) - 1}")


def _dump_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


class WordTokenizer(Tokenizer):

    def __init__(self, store: KeyValueStore | None = None, autoload: bool = True) -> None:
        """
        Initialize the WordTokenizer with only the special tokens.

        Args:
            store (KeyValueStore | None): Where the vocabulary is persisted.
                Defaults to a fresh in-memory store.
            autoload (bool): Restore a previously saved vocabulary from the
                store if one is there.
        """
        self._store = store if store is not None else InMemoryStore()
        self._word_to_index, self._index_to_word = build_vocab([])
        if autoload:
            self.load_vocab()

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    @override
    def vocab_size(self) -> int:
        return len(self._index_to_word)

    @property
    @override
    def vocabulary(self) -> list[str]:
        return list(self._index_to_word)

    @property
    def word_to_index(self) -> dict[str, int]:
        return dict(self._word_to_index)

    @property
    def pad_id(self) -> int:
        return self._word_to_index[SpecialToken.PAD.value]

    @property
    def unk_id(self) -> int:
        return self._word_to_index[SpecialToken.UNK.value]

    @property
    def sos_id(self) -> int:
        return self._word_to_index[SpecialToken.SOS.value]

    @property
    def eos_id(self) -> int:
        return self._word_to_index[SpecialToken.EOS.value]

    def token_to_id(self, word: str) -> int | None:
        return self._word_to_index.get(word)

    def id_to_token(self, idx: int) -> str | None:
        # numpy and torch integers are accepted through __index__
        if isinstance(idx, bool):
            raise TypeError("Token IDs must be integers, got bool")
        try:
            idx = operator.index(idx)
        except TypeError:
            raise TypeError(f"Token IDs must be integers, got {type(idx).__name__}") from None
        if 0 <= idx < len(self._index_to_word):
            return self._index_to_word[idx]
        return None

    @override
    def learn_vocab(self, corpus: str, save: bool = True) -> None:
        """
        Replace the vocabulary with the words of the corpus.

        Words are ordered by descending frequency, then alphabetically, and
        numbered after the special tokens. The new vocabulary is saved to the
        store unless save is False; a failed save only gets logged.
        """
        self._word_to_index, self._index_to_word = build_vocab(split_words(corpus))
        logger.info("Learned a vocabulary of %d tokens", self.vocab_size)
        if save:
            self.save_vocab()

    @override
    def encode(self, text: str, add_special_tokens: bool = True) -> list[int]:
        """Convert a string into token IDs, mapping unknown words to [UNK]."""
        unk_id = self.unk_id
        encoding = [self._word_to_index.get(word, unk_id) for word in split_words(text)]
        if add_special_tokens:
            encoding = [self.sos_id, *encoding, self.eos_id]
        return encoding

    @override
    def decode(self, encoding: list[int], skip_special_tokens: bool = True) -> str:
        """
        Convert token IDs back into space separated words.

        IDs outside the vocabulary decode to [UNK]. When skip_special_tokens
        is set every special token is left out, including those [UNK]s.
        """
        words = []
        for idx in encoding:
            word = self.id_to_token(idx)
            if word is None:
                word = SpecialToken.UNK.value
            if skip_special_tokens and word in SPECIAL_TOKENS:
                continue
            words.append(word)
        return " ".join(words)

    def save_vocab(self) -> bool:
        """
        Write the vocabulary to the store.

        Returns:
            True if the store accepted all three entries, False otherwise.
        """
        items = {
            WORD_TO_INDEX_KEY: _dump_json(self._word_to_index),
            INDEX_TO_WORD_KEY: _dump_json(self._index_to_word),
            VOCAB_SIZE_KEY: str(self.vocab_size),
        }
        try:
            self._store.set_many(items)
        except Exception:
            logger.exception("Failed to save vocabulary to %r", self._store)
            return False

        logger.info("Vocabulary saved to %r", self._store)
        return True

    def load_vocab(self) -> bool:
        """
        Restore a saved vocabulary from the store.

        The current vocabulary is only replaced when all three entries are
        present and consistent.

        Returns:
            True if a vocabulary was restored, False otherwise.
        """
        try:
            raw_word_to_index = self._store.get(WORD_TO_INDEX_KEY)
            raw_index_to_word = self._store.get(INDEX_TO_WORD_KEY)
            raw_vocab_size = self._store.get(VOCAB_SIZE_KEY)
        except Exception:
            logger.exception("Failed to read vocabulary from %r", self._store)
            return False

        if not (raw_word_to_index and raw_index_to_word and raw_vocab_size):
            logger.info("No saved vocabulary in %r", self._store)
            return False

        try:
            word_to_index = parse_word_to_index(raw_word_to_index)
            index_to_word = parse_index_to_word(raw_index_to_word)
            vocab_size = parse_vocab_size(raw_vocab_size)
            check_vocab(word_to_index, index_to_word, vocab_size)
        except (ValueError, TypeError, RecursionError) as e:
            logger.warning("Ignoring malformed vocabulary in %r: %s", self._store, e)
            return False

        self._word_to_index, self._index_to_word = word_to_index, index_to_word
        logger.info("Vocabulary of %d tokens loaded from %r", vocab_size, self._store)
        return True
