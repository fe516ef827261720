"""Cache invalidation hooks for the administrative layer."""

from uuid import UUID

from fastapi import APIRouter

from frontline.api.dependencies import PolicyCompilerDep, RuleCompilerDep
from frontline.api.models import InvalidateResponse

router = APIRouter(prefix="/tenants")


@router.post("/{tenant_id}/rules/invalidate", response_model=InvalidateResponse)
async def invalidate_rules(tenant_id: UUID, compiler: RuleCompilerDep) -> InvalidateResponse:
    """Drop the tenant's compiled rule set after an out-of-process edit."""
    await compiler.invalidate(tenant_id)
    return InvalidateResponse(tenant_id=tenant_id, artifact="rules")


@router.post("/{tenant_id}/policy/invalidate", response_model=InvalidateResponse)
async def invalidate_policy(tenant_id: UUID, compiler: PolicyCompilerDep) -> InvalidateResponse:
    """Drop the tenant's active policy so the next turn recompiles it."""
    await compiler.invalidate(tenant_id)
    return InvalidateResponse(tenant_id=tenant_id, artifact="policy")
