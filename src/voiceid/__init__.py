"""
voiceid: text-independent speaker identification from MFCC statistics
"""

from __future__ import annotations

__version__ = "1.0.0"

from .config import EMBEDDING_DIM, FeatureConfig, MatchConfig
from .embedding import cosine_similarity, generate_embedding, merge_embeddings
from .errors import (
    ConfigurationError,
    DuplicateOwnerError,
    InsufficientEnrollmentSamplesError,
    InvalidInputError,
    RecordNotFoundError,
    VoiceIDError,
)
from .features.profile import MFCCProfile, extract_profile
from .identifier import VoiceIdentifier
from .matching import MatchTier, SpeakerMatch
from .records import VoiceRecord
from .registry import EnrollAction, SpeakerRegistry

__all__ = [
    "EMBEDDING_DIM",
    "ConfigurationError",
    "DuplicateOwnerError",
    "EnrollAction",
    "FeatureConfig",
    "InsufficientEnrollmentSamplesError",
    "InvalidInputError",
    "MFCCProfile",
    "MatchConfig",
    "MatchTier",
    "RecordNotFoundError",
    "SpeakerMatch",
    "SpeakerRegistry",
    "VoiceIDError",
    "VoiceIdentifier",
    "VoiceRecord",
    "cosine_similarity",
    "extract_profile",
    "generate_embedding",
    "merge_embeddings",
    "__version__",
]
