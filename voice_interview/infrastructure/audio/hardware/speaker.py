"""
Speaker playback through a system audio player.
"""
import asyncio
import logging
import os
import shutil
import tempfile
from typing import Optional, Sequence, Tuple

from ....config import PLAYER_COMMANDS
from ....interview.errors import PlaybackError

logger = logging.getLogger("speaker")

# aplay only understands PCM containers
_WAV_ONLY_PLAYERS = {"aplay"}


def _suffix_for(mime_type: str) -> str:
    mime_type = (mime_type or "").lower()
    if "mp3" in mime_type or "mpeg" in mime_type:
        return ".mp3"
    if "ogg" in mime_type:
        return ".ogg"
    return ".wav"


class Speaker:
    """Plays reply audio with afplay, aplay or ffplay, whichever is installed."""

    def __init__(self, commands: Sequence[Tuple[str, ...]] = PLAYER_COMMANDS):
        self.commands = [tuple(c) for c in commands]

    def find_player(self, suffix: str = ".wav") -> Optional[Tuple[str, ...]]:
        for command in self.commands:
            if suffix != ".wav" and command[0] in _WAV_ONLY_PLAYERS:
                continue
            if shutil.which(command[0]):
                return command
        return None

    async def play(self, audio: bytes, mime_type: str) -> None:
        """
        Play audio to completion.

        Raises:
            PlaybackError: No player available or the player failed
        """
        suffix = _suffix_for(mime_type)
        player = self.find_player(suffix)
        if player is None:
            raise PlaybackError(f"No audio player found for {mime_type}")

        with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp_file:
            path = tmp_file.name
            tmp_file.write(audio)

        try:
            proc = await asyncio.create_subprocess_exec(
                *player, path,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                _, stderr = await proc.communicate()
            except asyncio.CancelledError:
                if proc.returncode is None:
                    proc.kill()
                    await proc.wait()
                raise
            if proc.returncode != 0:
                message = stderr.decode(errors="replace").strip() if stderr else ""
                raise PlaybackError(f"{player[0]} exited with {proc.returncode}: {message}")
            logger.debug(f"Played {len(audio)} bytes with {player[0]}")
        finally:
            try:
                os.unlink(path)
            except OSError:
                pass
