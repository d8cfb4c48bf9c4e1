from fastapi import HTTPException, Request

from core.use_cases.gate_context import GateContext


def get_gate_context(request: Request) -> GateContext:
    """
    Shared context built in the app lifespan; holds the single wallet signer.
    """
    ctx = getattr(request.app.state, "gate", None)
    if ctx is None:
        raise HTTPException(status_code=503, detail="Gate context not initialized")
    return ctx
