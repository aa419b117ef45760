# app/routers/tips.py
from typing import Literal, Optional

from fastapi import APIRouter, Query

from horizon.app.services import tips

router = APIRouter(prefix="/tips", tags=["Tips"])


@router.get("")
def random_tip(category: Optional[Literal["streak", "money", "growth"]] = Query(None)):
    return tips.random_tip(category)
