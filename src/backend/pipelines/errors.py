from __future__ import annotations


class VerificationError(RuntimeError):
    pass


class ProviderUnavailableError(VerificationError):
    """A collaborator (directory, attendance, ledger, rule store) failed.

    Distinct from a negative verdict: the fact is unknown, not "no".
    """

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider} unavailable: {message}")
        self.provider = provider


class RuleNotFoundError(KeyError):
    def __init__(self, rule_id: str):
        super().__init__(rule_id)
        self.rule_id = rule_id

    def __str__(self) -> str:
        return f"Rule not found: {self.rule_id}"
