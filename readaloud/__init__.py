"""Top-level package for readaloud.

This package aligns the sentences of rendered document pages to the elements
that display them and reads them aloud one by one, through Google Cloud
Text-to-Speech or an on-device engine. The main entry point for embedding is
`ReadAloudSession`, usually built with `ProviderFactory.create_session`.
"""

from .playback.controller import PlaybackController
from .provider_factory import ProviderFactory
from .session import ReadAloudSession

__all__ = ["PlaybackController", "ProviderFactory", "ReadAloudSession", "__version__"]

__version__ = "0.1.0"
