from .pipeline import ChatPipeline
from .context_builder import ContextBuilder
from .transcript_persister import TranscriptPersister
from .stream_registry import StreamRegistry, ResumableStream, get_stream_registry
