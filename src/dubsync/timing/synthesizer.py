"""Per-cue synthesis with adaptive rate fitting.

Each cue is synthesized once at speaking rate 1.0 (or served from the
cache), measured, and then sped up in a small number of re-renders until it
fits its time window. Re-renders stretch the rate-1.0 base audio, so the
provider is called at most once per distinct text/voice.
"""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from ..audio.engine import AudioEngine
from ..cache.keys import cache_key
from ..cache.manager import SynthesisCache
from ..config import TimingConfig
from ..errors import AudioEngineError
from ..providers.base import TTSProvider
from ..text import clean_text, preview
from ..tts.errors import TTSAPIError, TTSAuthError
from ..tts.models import SynthesisOptions
from .models import Cue, FitState, RenderedCue

logger = logging.getLogger(__name__)

# Shortest silence emitted for a blank cue
MIN_BLANK_SILENCE = 0.1

ProgressCallback = Callable[[int, int], None]


class RateFittingSynthesizer:
    """Render cues into WAV files that fit their time windows.

    Example:
        synthesizer = RateFittingSynthesizer(provider, engine, cache=cache)
        rendered = await synthesizer.render_all(cues, workdir, max_workers=4)
    """

    def __init__(
        self,
        provider: TTSProvider,
        engine: AudioEngine,
        options: SynthesisOptions | None = None,
        cache: SynthesisCache | None = None,
        timing: TimingConfig | None = None,
        timeout: float | None = 60.0,
        retries: int = 2,
    ) -> None:
        """Initialize the synthesizer.

        Args:
            provider: Speech-synthesis collaborator (always called at rate 1.0)
            engine: Audio engine for conversion, measuring and stretching
            options: Voice options shared by every cue
            cache: Optional synthesis cache; None disables caching
            timing: Threshold, rate range and attempt limits
            timeout: Seconds to wait for one synthesis call (None disables it)
            retries: Extra synthesis attempts after a timeout or API error
        """
        self.provider = provider
        self.engine = engine
        self.options = (options or SynthesisOptions()).with_rate(1.0)
        self.cache = cache
        self.timing = timing or TimingConfig()
        self.timeout = timeout
        self.retries = max(0, int(retries))
        self._key_locks: dict[str, asyncio.Lock] = {}

    async def _synthesize(self, text: str) -> bytes:
        """Call the provider with a timeout and bounded retry.

        Raises:
            TTSAuthError: Immediately, retrying cannot fix credentials
            TTSAPIError: If every attempt fails or times out
        """
        last_error: Exception | None = None
        for attempt in range(self.retries + 1):
            try:
                return await asyncio.wait_for(
                    self.provider.synthesize(text, self.options), timeout=self.timeout
                )
            except TTSAuthError:
                raise
            except (TTSAPIError, TimeoutError) as e:
                last_error = e
                logger.warning(
                    f"Synthesis attempt {attempt + 1}/{self.retries + 1} failed "
                    f"for '{preview(text)}': {str(e) or 'timed out'}"
                )

        status_code = getattr(last_error, "status_code", None)
        raise TTSAPIError(
            f"Synthesis failed after {self.retries + 1} attempts: {str(last_error) or 'timed out'}",
            status_code,
            last_error,
        )

    async def _fetch(self, text: str, key: str) -> tuple[bytes, bool]:
        """Return base audio for text and whether it came from the cache."""
        if self.cache is not None:
            try:
                audio = await asyncio.to_thread(self.cache.lookup, key)
            except Exception as e:
                logger.error(f"Cache lookup failed: {e}")
                audio = None
            if audio is not None:
                return audio, True

        audio = await self._synthesize(text)

        if self.cache is not None:
            try:
                await asyncio.to_thread(
                    self.cache.store,
                    key,
                    audio,
                    text=text,
                    options=self.options,
                    extension=self.provider.audio_format(self.options),
                )
            except Exception as e:
                # Caching is an optimization; the job continues without it
                logger.error(f"Failed to cache audio: {e}")
        return audio, False

    async def _measure(self, path: Path) -> float:
        return await asyncio.to_thread(self.engine.duration, path)

    async def _render_blank(self, index: int, cue: Cue, workdir: Path) -> RenderedCue:
        duration = max(MIN_BLANK_SILENCE, cue.expected_duration)
        path = workdir / f"cue_{index:04d}_silence.wav"
        await asyncio.to_thread(self.engine.silence, path, duration)
        logger.debug(f"Cue {index}: blank, {duration:.3f}s silence")
        return RenderedCue(
            index=index,
            cue=cue,
            audio_path=path,
            cache_hit=True,
            expected_duration=cue.expected_duration,
            actual_duration=duration,
        )

    def _gap_extension(self, index: int, cues: list[Cue], actual: float) -> float:
        """Idle time after cue index that an overlong rendering may borrow."""
        cue = cues[index]
        if actual <= cue.expected_duration or index + 1 >= len(cues):
            return 0.0
        eps = self.timing.min_silence
        gap = cues[index + 1].start - cue.end
        if gap <= eps:
            return 0.0
        extension = min(gap, actual - cue.expected_duration)
        return extension if extension > eps else 0.0

    async def render_cue(self, index: int, cues: list[Cue], workdir: Path) -> RenderedCue:
        """Render cue index and fit it into its window.

        The neighbor at index + 1 is consulted only for its nominal start,
        so cues can be rendered independently of each other.

        Args:
            index: Position of the cue in the sorted list
            cues: Full sorted cue list
            workdir: Directory for this run's intermediate files

        Returns:
            RenderedCue in a terminal fitting state

        Raises:
            TTSError: If synthesis fails
            AudioEngineError: If conversion, measuring or stretching fails
        """
        cue = cues[index]
        text = clean_text(cue.text)
        if not text:
            return await self._render_blank(index, cue, workdir)

        key = cache_key(text, self.options)
        lock = self._key_locks.setdefault(key, asyncio.Lock())
        async with lock:
            audio, cache_hit = await self._fetch(text, key)

        source = workdir / f"cue_{index:04d}_source.{self.provider.audio_format(self.options)}"
        await asyncio.to_thread(source.write_bytes, audio)
        base = workdir / f"cue_{index:04d}_r0.wav"
        await asyncio.to_thread(self.engine.to_wav, source, base)

        state = FitState.FITTING
        actual = await self._measure(base)
        expected = cue.expected_duration + self._gap_extension(index, cues, actual)
        if expected > cue.expected_duration:
            logger.debug(
                f"Cue {index}: borrowing {expected - cue.expected_duration:.3f}s of gap"
            )

        threshold = self.timing.sync_threshold
        options = self.options
        current = base
        attempts = 1
        while attempts < self.timing.max_attempts and actual - expected > threshold:
            rate = options.speaking_rate
            new_rate = min(
                max(rate * actual / expected, self.timing.min_rate), self.timing.max_rate
            )
            if new_rate <= rate:
                logger.debug(f"Cue {index}: rate already at {rate:.2f}, cannot speed up")
                break
            options = options.with_rate(new_rate)
            current = await asyncio.to_thread(
                self.engine.stretch,
                base,
                workdir / f"cue_{index:04d}_r{attempts}.wav",
                new_rate,
            )
            actual = await self._measure(current)
            attempts += 1
            logger.debug(
                f"Cue {index}: attempt {attempts} at rate {new_rate:.3f} -> {actual:.3f}s "
                f"(expected {expected:.3f}s)"
            )

        if actual - expected > threshold:
            trimmed = workdir / f"cue_{index:04d}_trim.wav"
            try:
                await asyncio.to_thread(self.engine.trim_trailing_silence, current, trimmed)
                trimmed_duration = await self._measure(trimmed)
            except AudioEngineError as e:
                logger.warning(f"Cue {index}: silence trim failed, keeping untrimmed audio: {e}")
            else:
                if 0 < trimmed_duration < actual:
                    logger.debug(
                        f"Cue {index}: trimmed {actual - trimmed_duration:.3f}s trailing silence"
                    )
                    current, actual = trimmed, trimmed_duration
                    state = FitState.TRIMMED

        if state is FitState.FITTING:
            state = (
                FitState.OVERFLOW_ACCEPTED
                if actual - expected > threshold
                else FitState.FITTED
            )
        if actual - expected > threshold:
            logger.warning(
                f"Cue {index} overflows its window by {actual - expected:.2f}s "
                f"at rate {options.speaking_rate:.2f}: '{preview(text)}'"
            )

        return RenderedCue(
            index=index,
            cue=cue,
            audio_path=current,
            cache_hit=cache_hit,
            expected_duration=expected,
            actual_duration=actual,
            speaking_rate=options.speaking_rate,
            state=state,
        )

    async def render_all(
        self,
        cues: list[Cue],
        workdir: str | Path,
        on_progress: ProgressCallback | None = None,
        max_workers: int = 1,
    ) -> list[RenderedCue]:
        """Render every cue, sequentially or with a bounded worker pool.

        Args:
            cues: Cues sorted by start
            workdir: Directory for intermediate files
            on_progress: Called with (done, total) after each cue
            max_workers: Cues rendered concurrently (1 = sequential)

        Returns:
            RenderedCue list in cue order
        """
        workdir = Path(workdir)
        workdir.mkdir(parents=True, exist_ok=True)
        total = len(cues)
        done = 0
        semaphore = asyncio.Semaphore(max(1, max_workers))

        async def render(index: int) -> RenderedCue:
            nonlocal done
            async with semaphore:
                rendered = await self.render_cue(index, cues, workdir)
            done += 1
            if on_progress:
                on_progress(done, total)
            return rendered

        if max_workers <= 1:
            results = [await render(i) for i in range(total)]
        else:
            tasks = [asyncio.create_task(render(i)) for i in range(total)]
            try:
                results = list(await asyncio.gather(*tasks))
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

        hits = sum(1 for r in results if r.cache_hit)
        overflow = sum(max(0.0, r.overflow) for r in results)
        logger.info(
            f"Rendered {total} cues: {hits} cache hits, {total - hits} synthesized, "
            f"total overflow {overflow:.2f}s"
        )
        return results
