"""Configuration errors"""


class NoExtraConfigError(Exception):
    """Raised when an endpoint has no script block under the requested namespace"""

    def __init__(self, namespace: str):
        self.namespace = namespace
        super().__init__(f"no extra config for {namespace}")


class WrongExtraConfigError(Exception):
    """Raised when the script block is not a mapping"""

    def __init__(self, namespace: str):
        self.namespace = namespace
        super().__init__(f"wrong extra config for {namespace}")


class WrongChecksumTypeError(Exception):
    """Raised when an md5 entry is not a string"""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"lua: wrong checksum type for source {source}")


class ChecksumMismatchError(Exception):
    """Raised when a source does not match its configured md5 digest"""

    def __init__(self, source: str, actual: str, expected: str):
        self.source = source
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"lua: wrong checksum for source {source}. have: {actual}, want: {expected}"
        )
