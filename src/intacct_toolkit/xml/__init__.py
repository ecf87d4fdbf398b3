from .writer import XMLWriter
from .response import AsynchronousResponse, SynchronousResponse

__all__ = ["XMLWriter", "AsynchronousResponse", "SynchronousResponse"]
