import argparse
import logging
import os
import sys

from tqdm import tqdm

from .dataloader import get_text_provider
from .metering import AverageValueMeter, RatioMeter
from .shell import run_shell
from .tokenizer.word_tokenizer import WordTokenizer
from .vocab_io import get_tokenizer, get_vocab_path


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="wordtok",
                                     description="Learn a word vocabulary, then encode and decode text with it")
    parser.add_argument("-e",
                        "--experiment",
                        help="The path to the folder where the vocabulary is saved",
                        required=True,
                        type=str)
    parser.add_argument("-v",
                        "--verbose",
                        help="Log what the tokenizer is doing",
                        action="store_true")

    subparsers = parser.add_subparsers(dest="command", required=True)

    learn_parser = subparsers.add_parser("learn", help="Learn the vocabulary from a file or folder")
    learn_parser.add_argument("-t",
                              "--train_file",
                              help="The file or folder you want to learn the vocabulary from",
                              required=True,
                              type=str)

    encode_parser = subparsers.add_parser("encode", help="Print the token IDs of a text")
    encode_parser.add_argument("text", help="The text to encode", type=str)
    encode_parser.add_argument("--no_special_tokens",
                               help="Do not wrap the IDs in [SOS] and [EOS]",
                               action="store_true")

    decode_parser = subparsers.add_parser("decode", help="Print the text of token IDs")
    decode_parser.add_argument("ids", help="The token IDs to decode", nargs="+", type=int)
    decode_parser.add_argument("--keep_special_tokens",
                               help="Keep [PAD], [UNK], [SOS] and [EOS] in the output",
                               action="store_true")

    subparsers.add_parser("size", help="Print the vocabulary size")

    stats_parser = subparsers.add_parser("stats", help="Report how well the vocabulary covers a text")
    stats_parser.add_argument("-t",
                              "--train_file",
                              help="The file or folder to measure",
                              required=True,
                              type=str)
    stats_parser.add_argument("--skip_empty",
                              help="Ignore lines without any word",
                              action="store_true")

    subparsers.add_parser("shell", help="Encode and decode interactively")

    args = parser.parse_args(argv)
    train_file = getattr(args, "train_file", None)
    if train_file is not None and not os.path.exists(train_file):
        parser.error(f"Path {train_file} does not exist")
    return args


def learn(tokenizer: WordTokenizer, train_file: str) -> int:
    text = get_text_provider(train_file).get_text()
    tokenizer.learn_vocab(text, save=False)
    print(f"Vocabulary size: {tokenizer.vocab_size}")
    if not tokenizer.save_vocab():
        print(f"Could not save the vocabulary to {tokenizer.store!r}", file=sys.stderr)
        return 1
    return 0


def compute_stats(tokenizer: WordTokenizer, text: str, skip_empty: bool = False) -> tuple[float, float, float]:
    """
    Encode the text line by line and measure the vocabulary coverage.

    Returns:
        The mean and standard deviation of the number of tokens per line and
        the share of tokens that were unknown.
    """
    tokens_per_line = AverageValueMeter()
    unknown_rate = RatioMeter()

    for line in tqdm(text.splitlines(), desc="Encoding", file=sys.stdout):
        encoding = tokenizer.encode(line, add_special_tokens=False)
        if skip_empty and not encoding:
            continue
        tokens_per_line.add(len(encoding))
        unknown_rate.add(encoding.count(tokenizer.unk_id), len(encoding))

    mean, std = tokens_per_line.value()
    return mean, std, unknown_rate.value()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    tokenizer = get_tokenizer(args.experiment)

    if args.command == "learn":
        return learn(tokenizer, args.train_file)

    if args.command == "encode":
        print(tokenizer.encode(args.text, add_special_tokens=not args.no_special_tokens))
    elif args.command == "decode":
        print(tokenizer.decode(args.ids, skip_special_tokens=not args.keep_special_tokens))
    elif args.command == "size":
        print(tokenizer.vocab_size)
    elif args.command == "stats":
        text = get_text_provider(args.train_file).get_text()
        mean, std, unknown_rate = compute_stats(tokenizer, text, args.skip_empty)
        print(f"Vocabulary: {get_vocab_path(args.experiment)} ({tokenizer.vocab_size} tokens)")
        print(f"Tokens per line: {mean:.2f} ± {std:.2f}")
        print(f"Unknown token rate: {unknown_rate:.2%}")
    elif args.command == "shell":
        run_shell(tokenizer)
    return 0


if __name__ == "__main__":
    sys.exit(main())
