from abc import abstractmethod, ABC


class Tokenizer(ABC):

    @abstractmethod
    def learn_vocab(self, corpus: str) -> None:
        """Replace the vocabulary with one learned from the corpus."""

    @abstractmethod
    def encode(self, text: str, add_special_tokens: bool = True) -> list[int]:
        """Convert a string into a sequence of token IDs."""

    @abstractmethod
    def decode(self, encoding: list[int], skip_special_tokens: bool = True) -> str:
        """Convert a sequence of token IDs back into a string."""

    @property
    @abstractmethod
    def vocab_size(self) -> int:
        """Return the size of the vocabulary."""

    @property
    @abstractmethod
    def vocabulary(self) -> list[str]:
        """Return the learned vocabulary, indexed by token ID"""

    def get_vocab_size(self) -> int:
        return self.vocab_size
