# verity_core/transport/transport_local.py
from typing import Dict, List, Union
from verity_core.errors import RemoteErrorCode, RemoteResolveError
from verity_core.logger import get_logger
from verity_core.transport.transport_base import BaseResolver, ProductData, TokenStatus

log = get_logger("Verity.Transport.Local")

Outcome = Union[ProductData, RemoteErrorCode]


class LocalResolver(BaseResolver):
    """
    In-process resolver with programmable per-token outcomes.

    Used for development without the vendor API and as the test double for
    the orchestrator. Unknown tokens resolve as NOT_FOUND.
    """
    name = "local"

    def __init__(self):
        self.outcomes: Dict[str, List[Outcome]] = {}
        self.calls: List[str] = []

    def register(self, token: str, data: ProductData) -> "LocalResolver":
        self.outcomes[token] = [data]
        return self

    def fail(self, token: str, code: RemoteErrorCode) -> "LocalResolver":
        self.outcomes[token] = [code]
        return self

    def script(self, token: str, *outcomes: Outcome) -> "LocalResolver":
        """Queue successive outcomes for a token; the last one repeats."""
        self.outcomes[token] = list(outcomes)
        return self

    def call_count(self, token: str) -> int:
        return self.calls.count(token)

    def resolve(self, token: str) -> ProductData:
        self.calls.append(token)
        script = self.outcomes.get(token)
        if not script:
            log.info(f"[LOCAL RESOLVE] {token} → not_found")
            raise RemoteResolveError(RemoteErrorCode.NOT_FOUND)
        outcome = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(outcome, RemoteErrorCode):
            log.info(f"[LOCAL RESOLVE] {token} → {outcome.value}")
            raise RemoteResolveError(outcome)
        log.info(f"[LOCAL RESOLVE] {token} → {outcome.status}")
        return outcome

    def check_status(self, token: str) -> TokenStatus:
        data = self.resolve(token)
        return TokenStatus(status=data.status, updated_at=data.verified_at)
