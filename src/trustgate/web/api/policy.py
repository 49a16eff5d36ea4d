"""REST API exposing the active policy. Read-only."""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["policy"])


@router.get("/policy")
async def get_policy(request: Request):
    policy = request.app.state.policy
    return {
        "name": policy.name,
        "description": policy.description,
        "inherit": list(policy.inherit),
        "default_requires_second_factor": policy.default_requires_second_factor,
        "trusted_networks": [
            {"network": str(rule.network), "label": rule.label}
            for rule in policy.rules
        ],
    }
