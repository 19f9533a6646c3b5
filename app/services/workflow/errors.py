"""Workflow exceptions — raised by the engine, translated to HTTP codes by routers."""


class WorkflowError(Exception):
    """Base class for claim workflow failures."""


class ClaimNotFoundError(WorkflowError):
    def __init__(self, claim_id: int):
        super().__init__(f"Claim {claim_id} not found")
        self.claim_id = claim_id


class InvalidTransitionError(WorkflowError):
    def __init__(self, claim_id: int, from_status: int, to_status: int):
        super().__init__(
            f"Claim {claim_id} cannot move from status {from_status} to {to_status}"
        )
        self.claim_id = claim_id
        self.from_status = from_status
        self.to_status = to_status


class TransitionNotPermittedError(WorkflowError):
    def __init__(self, claim_id: int, role: str, from_status: int, to_status: int):
        super().__init__(
            f"Role {role} may not move claim {claim_id} "
            f"from status {from_status} to {to_status}"
        )
        self.claim_id = claim_id
        self.role = role
        self.from_status = from_status
        self.to_status = to_status
