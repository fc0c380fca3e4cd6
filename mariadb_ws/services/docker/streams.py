"""Helpers for moving bytes through docker exec streams."""
import socket as pysocket
from typing import BinaryIO, Callable, Iterable, Iterator, Optional, Tuple

from docker.utils.socket import frames_iter

from mariadb_ws.core.logger import get_logger

logger = get_logger(__name__)

STDOUT = 1
STDERR = 2


def copy_stdout(
    chunks: Iterable[Tuple[Optional[bytes], Optional[bytes]]],
    sink: BinaryIO,
    on_stderr: Optional[Callable[[bytes], None]] = None,
    flush: bool = False,
) -> int:
    """Write every stdout chunk of a demuxed exec stream into ``sink``.

    Args:
        chunks: ``(stdout, stderr)`` pairs as yielded by the docker SDK
        sink: Binary file-like destination
        on_stderr: Callback for stderr chunks (defaults to logging them)
        flush: Flush the sink after every chunk

    Returns:
        Number of bytes written
    """
    written = 0
    for stdout, stderr in chunks:
        if stdout:
            sink.write(stdout)
            written += len(stdout)
            if flush:
                sink.flush()
        if stderr:
            if on_stderr is not None:
                on_stderr(stderr)
            else:
                log_stderr(stderr)
    return written


def log_stderr(data: bytes) -> None:
    for line in data.decode("utf-8", errors="replace").splitlines():
        if line.strip():
            logger.warning(line)


def raw_socket(sock):
    """Return the underlying socket of a hijacked exec connection."""
    return getattr(sock, "_sock", sock)


def send_all(sock, data: bytes) -> None:
    raw_socket(sock).sendall(data)


def iter_frames(sock, tty: bool = False) -> Iterator[Tuple[int, bytes]]:
    """Yield ``(stream_id, payload)`` frames read from an exec socket."""
    return frames_iter(sock, tty)


def close_write(sock) -> None:
    """Half-close the socket so the remote process sees end of input."""
    try:
        raw_socket(sock).shutdown(pysocket.SHUT_WR)
    except OSError:
        # Remote end already gone
        pass


def close_socket(sock) -> None:
    raw = raw_socket(sock)
    try:
        raw.shutdown(pysocket.SHUT_RDWR)
    except OSError:
        # Already closed by the remote end
        pass
    sock.close()
