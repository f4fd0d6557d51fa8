"""Pipeline module - turns coach replies into de-duplicated, aggregated records."""

from .similarity import similarity, edit_distance
from .parser import parse_response, ParsedResponse
from .duplicates import find_duplicate
from .aggregator import recompute
from .entry_log import EntryLog
from .transport import SessionTransport
from .controller import ConversationPipeline, PipelineState, SubmissionResult
from .factory import create_pipeline, init_pipeline, get_pipeline

__all__ = [
    'similarity',
    'edit_distance',
    'parse_response',
    'ParsedResponse',
    'find_duplicate',
    'recompute',
    'EntryLog',
    'SessionTransport',
    'ConversationPipeline',
    'PipelineState',
    'SubmissionResult',
    'create_pipeline',
    'init_pipeline',
    'get_pipeline',
]
