from typing import Annotated

from fastapi import APIRouter, Depends

from painpress.api.models import ComponentRegenerateResponse
from painpress.config import Settings, get_settings
from painpress.services.components import regenerate_component

router = APIRouter()


@router.post("/{content_id}/components/{index}/regenerate", response_model=ComponentRegenerateResponse)
async def regenerate(content_id: str, index: int, settings: Annotated[Settings, Depends(get_settings)]) -> ComponentRegenerateResponse:
  """Regenerate one interactive component of a stored article."""
  return await regenerate_component(content_id, index, settings=settings)
