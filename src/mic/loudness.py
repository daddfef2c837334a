"""
마이크 음량 샘플러 (sounddevice 입력 스트림 + numpy FFT).

브라우저 AnalyserNode 와 같은 방식: 주파수 bin 을 dB → 0~255 로 변환(시간 평활 포함),
낮은 주파수(목소리 대역)에 가중치 1/(i+1) 을 준 평균을 음량으로 사용.
오디오 콜백은 PortAudio 스레드에서 돌기 때문에 값은 loop.call_soon_threadsafe 로 넘김.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

import numpy as np

from src.avatar.config import MicConfig

logger = logging.getLogger(__name__)

MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0


def weighted_level(bins: np.ndarray) -> float:
    """bin 별 가중 평균 (낮은 bin 일수록 가중치 큼). 0~255."""
    if len(bins) == 0:
        return 0.0
    weights = 1.0 / (np.arange(len(bins)) + 1.0)
    return float(np.dot(bins.astype(np.float64), weights) / weights.sum())


class FrequencyAnalyser:
    def __init__(self, fft_size: int = 256, smoothing: float = 0.85):
        self.fft_size = fft_size
        self.smoothing = smoothing
        self._window = np.blackman(fft_size)
        self._smoothed = np.zeros(fft_size // 2, dtype=np.float64)

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def process(self, samples: np.ndarray) -> np.ndarray:
        """모노 float 샘플 → 0~255 uint8 주파수 bin (fft_size/2 개)."""
        block = np.asarray(samples, dtype=np.float64).reshape(-1)[-self.fft_size:]
        if len(block) < self.fft_size:
            block = np.pad(block, (self.fft_size - len(block), 0))
        spectrum = np.abs(np.fft.rfft(block * self._window))[: self.bin_count] / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * spectrum
        db = 20.0 * np.log10(np.maximum(self._smoothed, 1e-12))
        scaled = (db - MIN_DECIBELS) * (255.0 / (MAX_DECIBELS - MIN_DECIBELS))
        return np.clip(np.floor(scaled), 0, 255).astype(np.uint8)

    def reset(self) -> None:
        self._smoothed[:] = 0.0


class LoudnessSampler:
    """마이크 입력을 받아 블록마다 on_level(level) 호출 (이벤트 루프 스레드에서)."""

    def __init__(
        self,
        mic: MicConfig,
        on_level: Callable[[float], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.mic = mic
        self.on_level = on_level
        self._loop = loop
        self._analyser = FrequencyAnalyser(mic.fft_size, mic.smoothing)
        self._stream = None
        self.level = 0.0

    @property
    def running(self) -> bool:
        return self._stream is not None

    def start(self) -> bool:
        """입력 스트림 시작. 마이크를 못 쓰면 경고만 남기고 False (키/마우스는 계속 동작)."""
        if self._stream is not None:
            return True
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        try:
            import sounddevice as sd
        except ImportError:
            logger.warning("sounddevice 미설치. pip install sounddevice 후 마이크 사용 가능.")
            return False
        except OSError as e:
            logger.warning("PortAudio 를 불러오지 못함, 마이크 없이 진행: %s", e)
            return False
        try:
            stream = sd.InputStream(
                samplerate=self.mic.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self.mic.fft_size,
                device=self.mic.device,
                callback=self._callback,
            )
            stream.start()
        except Exception as e:
            logger.warning("마이크 접근 실패 또는 없음: %s", e)
            return False
        self._stream = stream
        logger.info("마이크 초기화 완료 (device=%s, fft=%d)", self.mic.device or "default", self.mic.fft_size)
        return True

    def stop(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except Exception as e:
            logger.warning("마이크 스트림 종료 실패: %s", e)
        self._stream = None
        self._analyser.reset()

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.debug("audio status: %s", status)
        level = weighted_level(self._analyser.process(indata[:, 0]))
        self.level = level
        try:
            self._loop.call_soon_threadsafe(self.on_level, level)
        except RuntimeError:
            # 루프가 이미 닫힘 (종료 중)
            logger.debug("이벤트 루프 종료됨, 음량 값 버림")
