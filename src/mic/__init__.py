# 마이크 입력 모듈

from .loudness import FrequencyAnalyser, LoudnessSampler, weighted_level
from .voice import VoiceDetector, classify_level

__all__ = ["FrequencyAnalyser", "LoudnessSampler", "VoiceDetector", "classify_level", "weighted_level"]
