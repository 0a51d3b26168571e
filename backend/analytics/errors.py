"""
Error taxonomy for the similarity / impact engine.

Only NodeNotFoundError ever reaches a caller (as a descriptive message).
ExternalQueryError is recovered by a fallback; MalformedInputError becomes
a guiding prompt in the command interpreter.
"""


class EngineError(Exception):
    """Base class for engine errors."""


class NodeNotFoundError(EngineError):
    def __init__(self, node_id: str):
        super().__init__(f"Node {node_id} not found")
        self.node_id = node_id


class ExternalQueryError(EngineError):
    """Graph executor or schema source failed (error, timeout, malformed response)."""


class MalformedInputError(EngineError):
    def __init__(self, prompt: str):
        super().__init__(prompt)
        self.prompt = prompt
