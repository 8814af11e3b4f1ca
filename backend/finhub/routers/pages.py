from __future__ import annotations

from html import escape

from fastapi import APIRouter, Query
from fastapi.responses import HTMLResponse


router = APIRouter()

# Dashboard sections that have no report view yet.
UNDER_CONSTRUCTION = {
    "/pnl": "P&L",
    "/executive/cash-flow": "Cash Flow Summary",
    "/executive/kpis": "KPIs & Ratios",
    "/executive/forecasts": "Forecasts",
    "/executive/reports": "Consolidated Reports",
    "/accounts-payable/insights/schedule": "Payment Schedule",
}

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title} | Under construction</title>
</head>
<body>
<main>
<h1>{title}</h1>
<p>This page is under construction. It will be available soon.</p>
<p><a href="{back}">&larr; Back</a></p>
</main>
</body>
</html>
"""


def render_placeholder(title: str, back: str = "/") -> str:
    # Only same-site relative links are accepted as the back target.
    if not back.startswith("/") or back.startswith("//"):
        back = "/"
    return PAGE_TEMPLATE.format(title=escape(title), back=escape(back, quote=True))


@router.get("/under-construction", response_class=HTMLResponse, include_in_schema=False)
async def under_construction(back: str = Query(default="/")) -> HTMLResponse:
    return HTMLResponse(render_placeholder("Coming soon", back))


def _placeholder_route(title: str):
    async def page(back: str = Query(default="/")) -> HTMLResponse:
        return HTMLResponse(render_placeholder(title, back))

    return page


for _path, _title in UNDER_CONSTRUCTION.items():
    router.add_api_route(_path, _placeholder_route(_title), response_class=HTMLResponse, include_in_schema=False)
