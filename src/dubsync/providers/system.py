"""System TTS provider using native OS text-to-speech commands.

This module provides text-to-speech functionality using the built-in
TTS capabilities of the operating system (say on macOS, espeak on Linux,
SAPI on Windows). Output is always WAV.
"""

import asyncio
import logging
import platform
import shutil
import subprocess
import tempfile
from pathlib import Path

from ..tts.errors import TTSAPIError
from ..tts.models import SynthesisOptions
from .base import TTSProvider

logger = logging.getLogger(__name__)


async def _run(cmd: list[str]) -> None:
    """Run a command without blocking the event loop.

    Raises:
        TTSAPIError: If the command exits non-zero
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
    )
    _, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise TTSAPIError(
            f"System TTS failed with code {proc.returncode}: "
            f"{stderr.decode(errors='replace').strip()}"
        )


class SystemTTSProvider(TTSProvider):
    """System TTS provider using native OS commands.

    Note: Audio quality will be robotic compared to cloud voices. Cloud voice
    names (e.g. "pl-PL-Standard-G") are not understood by the OS engines, so
    on Linux the language's primary subtag is used as the espeak voice
    instead.
    """

    def __init__(self) -> None:
        """Initialize system TTS provider and detect platform."""
        self.platform = platform.system()

        logger.warning(
            "Using system TTS - quality will be robotic compared to cloud voices. "
            "For better quality use --provider=google"
        )

        if self.platform not in ["Darwin", "Linux", "Windows"]:
            raise RuntimeError(f"Unsupported platform: {self.platform}")

    def audio_format(self, options: SynthesisOptions) -> str:
        return "wav"

    def _voice_for(self, options: SynthesisOptions) -> str | None:
        voice = options.voice
        if self.platform == "Linux":
            # espeak voices are language codes; "pl-PL-Standard-G" -> "pl"
            if not voice or voice.count("-") >= 2:
                return options.language.split("-")[0].lower()
        return voice or None

    async def synthesize(self, text: str, options: SynthesisOptions) -> bytes:
        """Convert text to WAV bytes using native OS commands.

        Raises:
            TTSAPIError: If the TTS command fails or is missing
            ValueError: If text is empty
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        voice = self._voice_for(options)

        with tempfile.TemporaryDirectory(prefix="dubsync-say-") as tmp:
            output_path = Path(tmp) / "speech.wav"

            if self.platform == "Darwin":
                aiff_path = Path(tmp) / "speech.aiff"
                cmd = ["say", "-o", str(aiff_path)]
                if voice:
                    cmd.extend(["-v", voice])
                cmd.append(text)
                await _run(cmd)

                # say only writes AIFF reliably
                await _run(
                    ["afconvert", "-f", "WAVE", "-d", "LEI16", str(aiff_path), str(output_path)]
                )

            elif self.platform == "Linux":
                if shutil.which("espeak") is None:
                    raise TTSAPIError(
                        "espeak not found. Install it with: sudo apt-get install espeak"
                    )
                cmd = ["espeak", "-w", str(output_path)]
                if voice:
                    cmd.extend(["-v", voice])
                cmd.append(text)
                await _run(cmd)

            else:  # Windows
                escaped = text.replace('"', '`"')
                ps_script = f'''
                Add-Type -AssemblyName System.Speech
                $speak = New-Object System.Speech.Synthesis.SpeechSynthesizer
                $speak.SetOutputToWaveFile("{output_path}")
                '''
                if voice:
                    ps_script += f'$speak.SelectVoice("{voice}")\n'
                ps_script += f'$speak.Speak("{escaped}")\n$speak.Dispose()'
                await _run(["powershell", "-Command", ps_script])

            if not output_path.exists():
                raise TTSAPIError("System TTS produced no audio")
            return output_path.read_bytes()

    async def list_voices(self, language: str | None = None) -> list[dict]:
        """List available system voices.

        Args:
            language: Optional language code; on Linux filters espeak voices
                by primary subtag

        Returns:
            List of voice dictionaries with id, name, and provider fields
        """
        voices = []

        if self.platform == "Darwin":
            try:
                result = await asyncio.to_thread(
                    subprocess.run,
                    ["say", "-v", "?"],
                    capture_output=True,
                    text=True,
                    check=True,
                )
                # Format: "Voice Name     pl_PL  # Description"
                for line in result.stdout.strip().split("\n"):
                    if line and not line.startswith("#"):
                        parts = line.split()
                        if parts:
                            voices.append(
                                {"id": parts[0], "name": parts[0], "provider": "system"}
                            )
            except (subprocess.CalledProcessError, OSError) as e:
                logger.error(f"Failed to list macOS voices: {e}")

        elif self.platform == "Linux":
            cmd = ["espeak", "--voices"]
            if language:
                cmd[-1] = f"--voices={language.split('-')[0].lower()}"
            try:
                result = await asyncio.to_thread(
                    subprocess.run, cmd, capture_output=True, text=True, check=True
                )
                lines = result.stdout.strip().split("\n")
                for line in lines[1:]:  # Skip header
                    parts = line.split()
                    if len(parts) >= 4:
                        # Pty Language Age/Gender VoiceName File ...
                        voices.append(
                            {"id": parts[1], "name": parts[3], "provider": "system"}
                        )
            except (subprocess.CalledProcessError, OSError):
                logger.warning("espeak not found - no voices available")

        else:
            ps_script = """
            Add-Type -AssemblyName System.Speech
            $speak = New-Object System.Speech.Synthesis.SpeechSynthesizer
            $speak.GetInstalledVoices() | ForEach-Object {
                $_.VoiceInfo.Name
            }
            """
            try:
                result = await asyncio.to_thread(
                    subprocess.run,
                    ["powershell", "-Command", ps_script],
                    capture_output=True,
                    text=True,
                    check=True,
                )
                for line in result.stdout.strip().split("\n"):
                    if line.strip():
                        voices.append(
                            {"id": line.strip(), "name": line.strip(), "provider": "system"}
                        )
            except (subprocess.CalledProcessError, OSError) as e:
                logger.error(f"Failed to list Windows voices: {e}")

        if not voices:
            voices.append(
                {"id": "default", "name": "Default System Voice", "provider": "system"}
            )

        return voices
