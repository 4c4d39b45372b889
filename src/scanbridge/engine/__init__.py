"""Detection engine contracts and the bundled thread-pool pipeline."""

from scanbridge.engine.base import (
    CancellationToken,
    Chunk,
    ContentSource,
    Detector,
    DetectorResult,
    EngineError,
    PipelineConfig,
    PipelineMetrics,
    ResultSink,
    SourceUnit,
)
from scanbridge.engine.decoders import DecoderType
from scanbridge.engine.pipeline import Pipeline, select_detectors

__all__ = [
    "CancellationToken",
    "Chunk",
    "ContentSource",
    "DecoderType",
    "Detector",
    "DetectorResult",
    "EngineError",
    "Pipeline",
    "PipelineConfig",
    "PipelineMetrics",
    "ResultSink",
    "SourceUnit",
    "select_detectors",
]
