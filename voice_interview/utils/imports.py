"""
Helpers for keeping native audio library noise off the terminal.
"""
import os
import functools
import logging

logger = logging.getLogger("imports")

# PortAudio looks for JACK on Linux; don't let it spawn a server
os.environ.setdefault("JACK_NO_START_SERVER", "1")

# Quiet gRPC logging from the Google Cloud clients
os.environ.setdefault("GRPC_VERBOSITY", "ERROR")
os.environ.setdefault("GLOG_minloglevel", "2")


def with_suppressed_audio_warnings(func):
    """
    Run func with stderr redirected to /dev/null at the file descriptor level.

    ALSA and PortAudio write diagnostics straight to fd 2 when a stream is
    opened or closed, bypassing Python's sys.stderr.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            original_stderr_fd = os.dup(2)
            null_fd = os.open(os.devnull, os.O_WRONLY)
            os.dup2(null_fd, 2)
            os.close(null_fd)
        except OSError as e:
            logger.debug(f"Could not redirect stderr: {e}")
            original_stderr_fd = None

        try:
            return func(*args, **kwargs)
        finally:
            if original_stderr_fd is not None:
                os.dup2(original_stderr_fd, 2)
                os.close(original_stderr_fd)

    return wrapper
