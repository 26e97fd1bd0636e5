"""
FastAPI routes for MQ imposter management.

Imposter and stub documents are accepted as raw JSON and validated by the
imposter configuration module, so every problem of a document is reported
together in one 400 response.
"""

import logging
from typing import Any, Dict, List
from fastapi import APIRouter, Body, Depends, Path, status

from ..exceptions import ValidationError
from ..services.imposter_manager import ImposterManager
from .dependencies import get_imposter_manager


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/imposters", tags=["Imposters"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_imposter(
    config: Dict[str, Any] = Body(..., description="Imposter configuration document"),
    manager: ImposterManager = Depends(get_imposter_manager)
) -> dict:
    """Create an imposter and start processing its input queues."""
    imposter = await manager.create_imposter(config)
    return imposter.to_dict()


@router.get("")
async def list_imposters(manager: ImposterManager = Depends(get_imposter_manager)) -> dict:
    """List all imposters."""
    return {
        "imposters": [
            {
                "protocol": imposter.protocol,
                "port": imposter.port,
                "name": imposter.name,
                "numberOfRequests": imposter.number_of_requests,
                "_links": {"self": {"href": f"/imposters/{imposter.port}"}}
            }
            for imposter in manager.list_imposters()
        ]
    }


@router.delete("")
async def delete_all_imposters(manager: ImposterManager = Depends(get_imposter_manager)) -> dict:
    """Stop and remove every imposter."""
    deleted = await manager.delete_all()
    return {"deleted": deleted}


@router.get("/{port}")
async def get_imposter(
    port: int = Path(..., description="Imposter port"),
    manager: ImposterManager = Depends(get_imposter_manager)
) -> dict:
    """Get an imposter with its stubs and recorded requests."""
    return manager.get_imposter(port).to_dict()


@router.delete("/{port}")
async def delete_imposter(
    port: int = Path(..., description="Imposter port"),
    manager: ImposterManager = Depends(get_imposter_manager)
) -> dict:
    """Stop and remove an imposter, returning its final state."""
    imposter = await manager.delete_imposter(port)
    return imposter.to_dict()


@router.post("/{port}/stubs")
async def add_stub(
    port: int = Path(..., description="Imposter port"),
    document: Dict[str, Any] = Body(..., description="{stub, index?} or a bare stub"),
    manager: ImposterManager = Depends(get_imposter_manager)
) -> dict:
    """Add a stub, appended unless an ``index`` is given."""
    if "stub" in document:
        stub, index = document["stub"], document.get("index")
    else:
        stub, index = document, None
    if index is not None and (not isinstance(index, int) or isinstance(index, bool)):
        raise ValidationError(["'index' must be an integer"])
    return manager.add_stub(port, stub, index).to_dict()


@router.put("/{port}/stubs")
async def replace_stubs(
    port: int = Path(..., description="Imposter port"),
    document: Dict[str, Any] = Body(..., description="{stubs: [...]}"),
    manager: ImposterManager = Depends(get_imposter_manager)
) -> dict:
    """Replace every stub of an imposter."""
    stubs: List[Any] = document.get("stubs", [])
    return manager.replace_stubs(port, stubs).to_dict()


@router.get("/{port}/stubs/{index}")
async def get_stub(
    port: int = Path(..., description="Imposter port"),
    index: int = Path(..., description="Stub index"),
    manager: ImposterManager = Depends(get_imposter_manager)
) -> dict:
    """Get one stub."""
    return manager.get_imposter(port).get_stub(index)


@router.put("/{port}/stubs/{index}")
async def replace_stub(
    port: int = Path(..., description="Imposter port"),
    index: int = Path(..., description="Stub index"),
    stub: Dict[str, Any] = Body(..., description="Stub document"),
    manager: ImposterManager = Depends(get_imposter_manager)
) -> dict:
    """Replace one stub."""
    return manager.replace_stub(port, index, stub).to_dict()


@router.delete("/{port}/stubs/{index}")
async def remove_stub(
    port: int = Path(..., description="Imposter port"),
    index: int = Path(..., description="Stub index"),
    manager: ImposterManager = Depends(get_imposter_manager)
) -> dict:
    """Remove one stub."""
    return manager.remove_stub(port, index).to_dict()


@router.delete("/{port}/savedRequests")
async def reset_requests(
    port: int = Path(..., description="Imposter port"),
    manager: ImposterManager = Depends(get_imposter_manager)
) -> dict:
    """Forget the requests recorded by an imposter."""
    return manager.reset_requests(port).to_dict()
