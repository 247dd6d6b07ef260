class LoadFailure(RuntimeError):
    """Fetching or parsing a page (or the offers file) failed.

    Nothing is cached for the failed attempt; reopening retries from scratch.
    """


class WriteSinkFailure(RuntimeError):
    """A download/copy sink rejected the generated content.

    The page stays dirty so the edits can be saved again.
    """
