import argparse
import logging
import os
import shutil
import stat as _stat
import sys
import tempfile

from typing import BinaryIO, Optional
from archiver import Compressor, Decompressor, Stats
from errors import CapacityError, FormatError

log = logging.getLogger("huffpack")


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="Huffman coding compressor for single files and pipes"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    for name, alias, help_text in (
        ("encode", "e", "Compress a file using Huffman coding"),
        ("decode", "d", "Decompress a file produced by encode"),
    ):
        sub = subparsers.add_parser(name, aliases=[alias], help=help_text)
        sub.add_argument(
            "-i", "--input", help="Input file (default: stdin)"
        )
        sub.add_argument(
            "-o", "--output", help="Output file (default: stdout)"
        )
        sub.add_argument(
            "-v",
            "--verbose",
            action="store_true",
            help="Print compression statistics",
        )
        sub.add_argument(
            "-p",
            "--progress",
            action="store_true",
            help="Show progress on stderr",
        )

    return parser


def _print_progress(line: str) -> None:
    """Render and flush a single progress line in-place (carriage return).

    Progress goes to stderr because stdout may carry the output data.

    :param line: The textual progress line to display.
    :type line: str
    :returns: None
    :rtype: None
    """
    sys.stderr.write("\r" + line)
    sys.stderr.flush()


def _fmt_pct(done: int, total: int) -> str:
    """Format a completion percentage string like ``12.34%``.

    :param done: Units completed.
    :type done: int
    :param total: Total units to complete.
    :type total: int
    :returns: Percentage.
    :rtype: str
    """
    if total <= 0:
        return "0%"
    pct = 100.0 * (done / float(total))
    return f"{pct:6.2f}%"


def _fmt_bytes(n: int) -> str:
    """Format a byte count into a human-readable string.

    :param n: Number of bytes.
    :type n: int
    :returns: Human-readable string.
    :rtype: str
    """
    for unit in ['', 'Ki', 'Mi', 'Gi', 'Ti']:
        if abs(n) < 1024:
            return f"{n:.2f} {unit}B"
        n /= 1024
    return f"{n:.2f} PiB"


class Progress:
    """Callable progress reporter for one session.

    Only redraws the line when the integer percentage changes.

    :ivar label: Action label (e.g., "Encoding" or "Decoding").
    :type label: str
    :ivar name: Name of the file being processed.
    :type name: str
    """

    def __init__(self, label: str, name: str) -> None:
        self.label = label
        self.name = name
        self._last_reported = -1

    def __call__(self, done: int, total: int) -> None:
        """Update the progress display.

        :param done: Bytes processed so far.
        :type done: int
        :param total: Total bytes of the session.
        :type total: int
        :returns: None
        :rtype: None
        """
        if total <= 0:
            return
        percent_bucket = int((done * 100) / total)
        if percent_bucket == self._last_reported:
            return
        self._last_reported = percent_bucket
        _print_progress(f"{self.label} {self.name}  {_fmt_pct(done, total)}")


def _print_stats(stats: Stats, decoding: bool) -> None:
    """Print session statistics to stderr."""
    plain = "Decompressed" if decoding else "Uncompressed"
    lines = [
        f"{plain} file size: {stats.file_size} bytes"
        f" ({_fmt_bytes(stats.file_size)})",
        f"Compressed file size: {stats.compressed_size} bytes"
        f" ({_fmt_bytes(stats.compressed_size)})",
        f"Space saving: {stats.space_saving:.2f}%",
    ]
    if decoding:
        lines[0], lines[1] = lines[1], lines[0]
    for line in lines:
        print(line, file=sys.stderr)


def _stage_input(stream: BinaryIO) -> BinaryIO:
    """Copy a non-seekable stream into a temporary file.

    :param stream: Binary stream such as ``sys.stdin.buffer``.
    :type stream: BinaryIO
    :returns: Temporary file positioned at its start.
    :rtype: BinaryIO
    """
    staged = tempfile.TemporaryFile()
    shutil.copyfileobj(stream, staged)
    staged.seek(0)
    return staged


def _chmod(path: str, mode: int) -> None:
    """Apply ``mode`` to ``path``, warning instead of failing."""
    try:
        os.chmod(path, _stat.S_IMODE(mode))
    except PermissionError:
        print(
            f"[!] Permission error happened while trying to chmod {path}",
            file=sys.stderr,
        )


def encode_file(
    input_path: Optional[str],
    output_path: Optional[str],
    verbose: bool = False,
    progress: bool = False,
) -> Stats:
    """Compress ``input_path`` (or stdin) into ``output_path`` (or stdout).

    The input's permission bits are stored in the header and applied to
    the output file.

    :param input_path: File to compress; ``None`` reads stdin.
    :type input_path: Optional[str]
    :param output_path: Destination file; ``None`` writes stdout.
    :type output_path: Optional[str]
    :param verbose: Whether to print statistics to stderr.
    :type verbose: bool
    :param progress: Whether to show a progress line on stderr.
    :type progress: bool
    :returns: Session statistics.
    :rtype: Stats
    :raises FileNotFoundError: If ``input_path`` does not exist.
    """
    if input_path is None:
        source = _stage_input(sys.stdin.buffer)
        permissions = 0
    else:
        source = open(input_path, "rb")
        permissions = _stat.S_IMODE(os.fstat(source.fileno()).st_mode)
        if not source.seekable():
            raw = source
            source = _stage_input(raw)
            raw.close()

    on_prog = Progress("Encoding", input_path or "<stdin>") if progress \
        else None
    with source:
        if output_path is None:
            stats = Compressor().compress(
                source, sys.stdout.buffer, permissions, on_progress=on_prog
            )
            sys.stdout.buffer.flush()
        else:
            try:
                with open(output_path, "wb") as out:
                    stats = Compressor().compress(
                        source, out, permissions, on_progress=on_prog
                    )
            except (FormatError, CapacityError):
                os.remove(output_path)
                raise
            if permissions:
                _chmod(output_path, permissions)

    if progress:
        sys.stderr.write("\n")
        sys.stderr.flush()
    if verbose:
        _print_stats(stats, decoding=False)
    return stats


def decode_file(
    input_path: Optional[str],
    output_path: Optional[str],
    verbose: bool = False,
    progress: bool = False,
) -> Stats:
    """Decompress ``input_path`` (or stdin) into ``output_path`` (or stdout).

    :param input_path: File to decompress; ``None`` reads stdin.
    :type input_path: Optional[str]
    :param output_path: Destination file; ``None`` writes stdout.
    :type output_path: Optional[str]
    :param verbose: Whether to print statistics to stderr.
    :type verbose: bool
    :param progress: Whether to show a progress line on stderr.
    :type progress: bool
    :returns: Session statistics.
    :rtype: Stats
    :raises FormatError: If the input is not a valid huffpack stream.
    """
    decompressor = Decompressor()
    on_prog = Progress("Decoding", input_path or "<stdin>") if progress \
        else None
    source = sys.stdin.buffer if input_path is None \
        else open(input_path, "rb")
    try:
        if output_path is None:
            stats = decompressor.decompress(
                source, sys.stdout.buffer, on_progress=on_prog
            )
            sys.stdout.buffer.flush()
        else:
            try:
                with open(output_path, "wb") as out:
                    stats = decompressor.decompress(
                        source, out, on_progress=on_prog
                    )
            except (FormatError, CapacityError):
                os.remove(output_path)
                raise
            if decompressor.header.permissions:
                _chmod(output_path, decompressor.header.permissions)
    finally:
        if input_path is not None:
            source.close()

    if progress:
        sys.stderr.write("\n")
        sys.stderr.flush()
    if verbose:
        _print_stats(stats, decoding=True)
    return stats


def main(argv=None) -> int:
    """Entry point for the CLI tool.

    :param argv: Arguments without the program name; defaults to
        ``sys.argv[1:]``.
    :returns: Process exit status.
    :rtype: int
    """
    parser = get_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    action = encode_file if args.cmd in ["encode", "e"] else decode_file
    try:
        action(args.input, args.output, args.verbose, args.progress)
    except OSError as e:
        log.debug("session aborted", exc_info=True)
        if e.filename is not None:
            print(f"[!] Couldn't open {e.filename}: {e.strerror}",
                  file=sys.stderr)
        else:
            print(f"[!] {e}", file=sys.stderr)
        return 1
    except (FormatError, CapacityError) as e:
        log.debug("session aborted", exc_info=True)
        print(f"[!] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
