import logging
import os

from .storage import JsonFileStore
from .tokenizer.word_tokenizer import WordTokenizer


logger = logging.getLogger(__name__)

VOCAB_FILE_NAME = "vocab.json"


def get_vocab_path(exp_folder: str) -> str:
    return os.path.join(exp_folder, VOCAB_FILE_NAME)


def get_tokenizer(exp_path: str) -> WordTokenizer:
    vocab_path = get_vocab_path(exp_path)
    tokenizer = WordTokenizer(JsonFileStore(vocab_path), autoload=False)
    if not tokenizer.load_vocab():
        logger.info("No vocabulary at %s, proceeding with the special tokens only", vocab_path)
    return tokenizer
