"""
Admin Analytics API.

Dashboard statistics over a rolling window in the reference timezone.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.deps import get_context
from src.api.schemas import DashboardResponse, dashboard_response
from src.app_shell.context import ServiceContext

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    window_days: int | None = Query(None, description="Rolling window in days"),
    ctx: ServiceContext = Depends(get_context),
) -> DashboardResponse:
    """
    Get dashboard statistics.

    Statistics with a small sample are returned with low_confidence set;
    the consumer decides how to caveat them.
    """
    output = ctx.dashboard(window_days)
    if not output.success or output.stats is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "ok": False,
                "errors": [
                    {"code": e.code, "message": e.message, "field": e.field_name}
                    for e in output.errors
                ],
            },
        )
    return dashboard_response(output.stats)
