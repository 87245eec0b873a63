from .images import (
    ProviderEnum, AspectRatio, ResolutionTier, SequentialMode, EditorMode,
    ImageModel, Dimensions, GeneratedImage, GenerationResponse,
    GenerationRequest, GenerationDraft, ImageAsset,
    PromptEnhanceRequest, PromptEnhanceResponse,
)
from .history import HistoryItem, HistoryParams

__all__ = [
    "ProviderEnum",
    "AspectRatio",
    "ResolutionTier",
    "SequentialMode",
    "EditorMode",
    "ImageModel",
    "Dimensions",
    "GeneratedImage",
    "GenerationResponse",
    "GenerationRequest",
    "GenerationDraft",
    "ImageAsset",
    "PromptEnhanceRequest",
    "PromptEnhanceResponse",
    "HistoryItem",
    "HistoryParams",
]
