import json
import logging

import pytest

from wordtok.storage import InMemoryStore, JsonFileStore, KeyValueStore
from wordtok.tokenizer.word_tokenizer import (
    INDEX_TO_WORD_KEY,
    SPECIAL_TOKENS,
    VOCAB_SIZE_KEY,
    WORD_TO_INDEX_KEY,
    WordTokenizer,
)


corpus = "the quick brown fox jumps over the lazy dog the end"

special_only = {
    WORD_TO_INDEX_KEY: '{"[PAD]":0,"[UNK]":1,"[SOS]":2,"[EOS]":3}',
    INDEX_TO_WORD_KEY: '["[PAD]","[UNK]","[SOS]","[EOS]"]',
    VOCAB_SIZE_KEY: "4",
}


class BrokenStore(KeyValueStore):
    def get(self, key: str) -> str | None:
        raise OSError("storage unavailable")

    def set(self, key: str, value: str) -> None:
        raise OSError("storage unavailable")


def stored_vocab(word_to_index, index_to_word, vocab_size) -> dict[str, str]:
    return {
        WORD_TO_INDEX_KEY: json.dumps(word_to_index),
        INDEX_TO_WORD_KEY: json.dumps(index_to_word),
        VOCAB_SIZE_KEY: str(vocab_size),
    }


def test_persistence_round_trip():
    store = InMemoryStore()
    tokenizer = WordTokenizer(store)
    tokenizer.learn_vocab(corpus)
    assert tokenizer.save_vocab()

    restored = WordTokenizer(store, autoload=False)
    assert restored.vocab_size == 4
    assert restored.load_vocab()

    assert restored.word_to_index == tokenizer.word_to_index
    assert restored.vocabulary == tokenizer.vocabulary
    assert restored.vocab_size == tokenizer.vocab_size
    assert restored.encode(corpus) == tokenizer.encode(corpus)


def test_autoload_on_construction():
    store = InMemoryStore()
    WordTokenizer(store).learn_vocab(corpus)

    assert WordTokenizer(store).vocab_size == 13
    assert WordTokenizer(store, autoload=False).vocab_size == 4


def test_load_from_an_empty_store():
    tokenizer = WordTokenizer(InMemoryStore(), autoload=False)
    assert not tokenizer.load_vocab()
    assert tokenizer.vocabulary == list(SPECIAL_TOKENS)


def test_load_with_a_missing_key():
    data = dict(special_only)
    del data[VOCAB_SIZE_KEY]
    tokenizer = WordTokenizer(InMemoryStore(data), autoload=False)
    tokenizer.learn_vocab("kept", save=False)

    assert not tokenizer.load_vocab()
    assert tokenizer.vocabulary == [*SPECIAL_TOKENS, "kept"]


def test_load_a_well_formed_store():
    tokenizer = WordTokenizer(InMemoryStore(special_only), autoload=False)
    tokenizer.learn_vocab("replaced", save=False)

    assert tokenizer.load_vocab()
    assert tokenizer.vocabulary == list(SPECIAL_TOKENS)


def test_load_the_original_browser_format():
    data = {
        WORD_TO_INDEX_KEY: '{"[PAD]":0,"[UNK]":1,"[SOS]":2,"[EOS]":3,"the":4,"fox":5}',
        INDEX_TO_WORD_KEY: '["[PAD]","[UNK]","[SOS]","[EOS]","the","fox"]',
        VOCAB_SIZE_KEY: "6",
    }
    tokenizer = WordTokenizer(InMemoryStore(data))

    assert tokenizer.vocab_size == 6
    assert tokenizer.encode("The fox") == [2, 4, 5, 3]


def test_corrupt_json_is_ignored(caplog):
    data = dict(special_only)
    data[WORD_TO_INDEX_KEY] = "{not json"
    tokenizer = WordTokenizer(InMemoryStore(data), autoload=False)

    with caplog.at_level(logging.WARNING):
        assert not tokenizer.load_vocab()

    assert tokenizer.vocabulary == list(SPECIAL_TOKENS)
    assert tokenizer.word_to_index == {token: idx for idx, token in enumerate(SPECIAL_TOKENS)}
    assert "malformed" in caplog.text


malformed_vocabularies = [
    # non integer ids
    stored_vocab({"[PAD]": 0, "[UNK]": 1, "[SOS]": 2, "[EOS]": "3"}, list(SPECIAL_TOKENS), 4),
    stored_vocab({"[PAD]": 0, "[UNK]": 1, "[SOS]": 2, "[EOS]": 3.0}, list(SPECIAL_TOKENS), 4),
    stored_vocab({"[PAD]": False, "[UNK]": 1, "[SOS]": 2, "[EOS]": 3}, list(SPECIAL_TOKENS), 4),
    # wrong container types
    stored_vocab(list(SPECIAL_TOKENS), list(SPECIAL_TOKENS), 4),
    stored_vocab({"[PAD]": 0, "[UNK]": 1, "[SOS]": 2, "[EOS]": 3}, {"0": "[PAD]"}, 4),
    stored_vocab({"[PAD]": 0, "[UNK]": 1, "[SOS]": 2, "[EOS]": 3}, ["[PAD]", "[UNK]", "[SOS]", 3], 4),
    # sizes disagree
    stored_vocab({"[PAD]": 0, "[UNK]": 1, "[SOS]": 2, "[EOS]": 3}, list(SPECIAL_TOKENS), 5),
    stored_vocab({"[PAD]": 0, "[UNK]": 1, "[SOS]": 2, "[EOS]": 3, "a": 4}, list(SPECIAL_TOKENS), 4),
    # directions disagree
    stored_vocab({"[PAD]": 0, "[UNK]": 1, "[SOS]": 2, "[EOS]": 3, "a": 5, "b": 4},
                 [*SPECIAL_TOKENS, "a", "b"], 6),
    stored_vocab({"[PAD]": 0, "[UNK]": 1, "[SOS]": 2, "[EOS]": 3, "a": 9},
                 [*SPECIAL_TOKENS, "a"], 5),
    # special tokens moved
    stored_vocab({"[UNK]": 0, "[PAD]": 1, "[SOS]": 2, "[EOS]": 3},
                 ["[UNK]", "[PAD]", "[SOS]", "[EOS]"], 4),
    # size is not a plain integer
    stored_vocab({"[PAD]": 0, "[UNK]": 1, "[SOS]": 2, "[EOS]": 3}, list(SPECIAL_TOKENS), "4.0"),
    stored_vocab({"[PAD]": 0, "[UNK]": 1, "[SOS]": 2, "[EOS]": 3}, list(SPECIAL_TOKENS), "-4"),
    # nested too deeply to parse
    {**special_only, WORD_TO_INDEX_KEY: "[" * 200000},
    {**special_only, INDEX_TO_WORD_KEY: "[" * 200000},
    # a backend handing back bytes instead of text
    {**special_only, VOCAB_SIZE_KEY: b"4"},
]


@pytest.mark.parametrize("data", malformed_vocabularies)
def test_malformed_vocabulary_is_rejected(data):
    tokenizer = WordTokenizer(InMemoryStore(data), autoload=False)
    tokenizer.learn_vocab("untouched", save=False)

    assert not tokenizer.load_vocab()
    assert tokenizer.vocabulary == [*SPECIAL_TOKENS, "untouched"]


def test_unavailable_store_does_not_raise(caplog):
    tokenizer = WordTokenizer(BrokenStore())
    assert tokenizer.vocab_size == 4

    with caplog.at_level(logging.ERROR):
        tokenizer.learn_vocab(corpus)
        assert not tokenizer.save_vocab()
        assert not tokenizer.load_vocab()

    assert tokenizer.vocab_size == 13
    assert "Failed to save vocabulary" in caplog.text
    assert "Failed to read vocabulary" in caplog.text


def test_json_file_store_round_trip(tmp_path):
    vocab_path = tmp_path / "nested" / "vocab.json"
    tokenizer = WordTokenizer(JsonFileStore(str(vocab_path)))
    tokenizer.learn_vocab(corpus)

    assert vocab_path.exists()
    assert sorted(json.loads(vocab_path.read_text(encoding="utf-8"))) == sorted(
        [WORD_TO_INDEX_KEY, INDEX_TO_WORD_KEY, VOCAB_SIZE_KEY])

    restored = WordTokenizer(JsonFileStore(str(vocab_path)))
    assert restored.word_to_index == tokenizer.word_to_index
    assert restored.vocabulary == tokenizer.vocabulary


def test_json_file_store_with_corrupt_file(tmp_path):
    vocab_path = tmp_path / "vocab.json"
    vocab_path.write_text("{oops", encoding="utf-8")

    tokenizer = WordTokenizer(JsonFileStore(str(vocab_path)))
    assert tokenizer.vocabulary == list(SPECIAL_TOKENS)
    assert not tokenizer.save_vocab()
    assert vocab_path.read_text(encoding="utf-8") == "{oops"


def test_json_file_store_with_unparsable_values(tmp_path):
    vocab_path = tmp_path / "vocab.json"
    data = {**special_only, WORD_TO_INDEX_KEY: "[" * 200000}
    vocab_path.write_text(json.dumps(data), encoding="utf-8")

    tokenizer = WordTokenizer(JsonFileStore(str(vocab_path)))
    assert tokenizer.vocabulary == list(SPECIAL_TOKENS)
