from typing import Callable

from .tokenizer.word_tokenizer import WordTokenizer


PROMPT = "wordtok> "
USAGE = "Commands: encode <text> | decode <id> [<id> ...] | size | quit"


def parse_ids(argument: str) -> list[int]:
    # Accept both "2 5 3" and a pasted "[2, 5, 3]"
    return [int(token) for token in argument.strip().strip("[]").replace(",", " ").split()]


def handle_command(tokenizer: WordTokenizer, line: str) -> str:
    command, _, argument = line.strip().partition(" ")
    if command == "encode":
        return str(tokenizer.encode(argument))
    if command == "decode":
        try:
            ids = parse_ids(argument)
        except ValueError:
            return f"Invalid token IDs: {argument}"
        return tokenizer.decode(ids)
    if command == "size":
        return str(tokenizer.vocab_size)
    return USAGE


def run_shell(tokenizer: WordTokenizer, read_line: Callable[[str], str] = input) -> None:
    print(USAGE)
    while True:
        try:
            line = read_line(PROMPT)
        except EOFError:
            print()
            return

        if line.strip() == "quit":
            return

        print(handle_command(tokenizer, line))
        print("-----------------------------------")
