from __future__ import annotations

import asyncio
import json
import logging
import math
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
import uvicorn

from affdash.client.auth import (
    AuthError,
    get_stored_user,
    login_user,
    logout_user,
    register_user,
    validate_login_form,
    validate_register_form,
)
from affdash.client.base import BackendClient
from affdash.client.mapping import (
    MappingError,
    filter_order_links,
    get_order_links_with_mappings,
    get_unmapped_campaigns,
    map_campaign_to_order_link,
    remove_campaign_mapping,
)
from affdash.client.shop_settings import SettingsError, get_settings, update_settings
from affdash.client.stats import QUERY_TYPES, fetch_dashboard_data, fetch_recommendations, normalize_query_type
from affdash.client.uploads import UPLOAD_KINDS, UploadError, upload_csv, validate_upload
from affdash.config import Settings
from affdash.dashboard import (
    ALL_CAMPAIGNS,
    day_details,
    default_date_range,
    list_campaigns,
    pivot_chart_data,
    summarize,
    trend_series,
)
from affdash.db import LocalDB
from affdash.models import ShopSettings
from affdash.recommend import LEVEL_LABELS, select_recommendations
from affdash.repo import Repo
from affdash.shop import ShopState
from affdash.util import parse_day, to_float, today_local
from affdash.web.formatting import register_filters


log = logging.getLogger(__name__)

DEFAULT_TITLE = "Hiệu Suất Tiếp Thị"
UPLOAD_CARDS = {
    "ad": {
        "title": "Import Quảng Cáo (Ads)",
        "description": "Tải lên file báo cáo chi phí và hiệu quả quảng cáo.",
    },
    "order": {
        "title": "Import Đơn Hàng (Orders)",
        "description": "Tải lên file danh sách đơn hàng và doanh thu.",
    },
}


def _redirect(path: str, **params: Any) -> RedirectResponse:
    clean = {k: str(v) for k, v in params.items() if v not in (None, "")}
    url = f"{path}?{urlencode(clean)}" if clean else path
    return RedirectResponse(url=url, status_code=303)


def _form_str(form: Any, key: str) -> str:
    v = form.get(key)
    return v.strip() if isinstance(v, str) else ""


def _valid_day_or(raw: str | None, default: str) -> str:
    d = parse_day(raw)
    return d.isoformat() if d else default


def create_app(settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    LocalDB(settings.db_path).init()
    repo = Repo(settings.db_path)
    client = BackendClient(settings.api_url, repo=repo, timeout=settings.http_timeout, transport=transport)
    shop = ShopState(client)

    async def _ensure_shop() -> None:
        if shop.settings is None and get_stored_user(client) is not None:
            await shop.refresh()

    def _template_common_context(_request: Request) -> dict[str, Any]:
        current = shop.settings
        user = get_stored_user(client)
        return {
            "user": user,
            "shop_settings": current,
            "shop_title": (current.name if current and current.name else DEFAULT_TITLE),
        }

    base_dir = Path(__file__).resolve().parent
    templates = Jinja2Templates(
        directory=str(base_dir / "templates"),
        context_processors=[_template_common_context],
    )
    register_filters(templates.env)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if get_stored_user(client) is not None:
            await shop.refresh()
        yield

    app = FastAPI(title="Affiliate Dashboard", lifespan=lifespan)
    app.state.repo = repo
    app.state.client = client
    app.state.shop = shop
    app.mount("/static", StaticFiles(directory=str(base_dir / "static")), name="static")

    # --- auth ---

    @app.get("/login", response_class=HTMLResponse)
    def login_page(request: Request, error: str | None = None, username: str = ""):
        if get_stored_user(client) is not None:
            return RedirectResponse(url="/", status_code=303)
        return templates.TemplateResponse(request, "login.html", {"error": error, "username": username})

    @app.post("/login")
    async def login_submit(request: Request):
        form = await request.form()
        username = _form_str(form, "username")
        password = form.get("password") or ""
        err = validate_login_form(username, str(password))
        if err:
            return _redirect("/login", error=err, username=username)
        try:
            user = await login_user(client, username, str(password), mock_fallback=settings.mock_fallback)
        except AuthError as e:
            return _redirect("/login", error=str(e), username=username)
        log.info("logged in as %s", user.username)
        await shop.refresh()
        return RedirectResponse(url="/", status_code=303)

    @app.get("/register", response_class=HTMLResponse)
    def register_page(request: Request, error: str | None = None):
        return templates.TemplateResponse(request, "register.html", {"error": error})

    @app.post("/register")
    async def register_submit(request: Request):
        form = await request.form()
        username = _form_str(form, "username")
        shop_name = _form_str(form, "shop_name")
        shop_description = _form_str(form, "shop_description")
        password = str(form.get("password") or "")
        confirm = str(form.get("confirm_password") or "")
        err = validate_register_form(username, password, confirm, shop_name)
        if err:
            return _redirect("/register", error=err)
        try:
            await register_user(client, username, password, shop_name, shop_description)
        except AuthError as e:
            return _redirect("/register", error=str(e))
        await shop.refresh()
        return RedirectResponse(url="/", status_code=303)

    @app.post("/logout")
    def logout():
        logout_user(client)
        shop.clear()
        return RedirectResponse(url="/login", status_code=303)

    # --- dashboard ---

    @app.get("/", response_class=HTMLResponse)
    async def dashboard_page(
        request: Request,
        start: str | None = None,
        end: str | None = None,
        campaign: str = ALL_CAMPAIGNS,
        query_type: str = Query("clickTime", alias="type"),
        active: int = 0,
        detail: str | None = None,
    ):
        if get_stored_user(client) is None:
            return RedirectResponse(url="/login", status_code=303)
        await _ensure_shop()

        default_start, default_end = default_date_range(today_local(settings.timezone))
        start_s = _valid_day_or(start, default_start)
        end_s = _valid_day_or(end, default_end)
        query_type = normalize_query_type(query_type)
        only_active = bool(active)

        daily, backend_recs = await asyncio.gather(
            fetch_dashboard_data(client, start_s, end_s, query_type),
            fetch_recommendations(client),
        )

        campaigns = list_campaigns(daily)
        selected = campaign if campaign in campaigns else ALL_CAMPAIGNS
        points, active_campaigns = pivot_chart_data(
            daily,
            start=start_s,
            end=end_s,
            campaign=selected,
            only_active=only_active,
            settings=shop.settings,
        )
        recommendations = select_recommendations(backend_recs, daily, shop.settings)
        details = day_details(daily, detail) if detail else None

        filters = {"start": start_s, "end": end_s, "campaign": selected, "type": query_type}
        if only_active:
            filters["active"] = "1"

        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "has_data": bool(daily),
                "filters": filters,
                "filters_qs": urlencode(filters),
                "query_types": QUERY_TYPES,
                "campaigns": campaigns,
                "active_campaigns": active_campaigns,
                "kpi": summarize(points),
                "chart_json": json.dumps([p.to_dict() for p in points], ensure_ascii=False),
                "trend_json": json.dumps(trend_series(points)) if selected != ALL_CAMPAIGNS else None,
                "recommendations": recommendations,
                "level_labels": LEVEL_LABELS,
                "details": details,
            },
        )

    # --- CSV import ---

    @app.get("/import", response_class=HTMLResponse)
    def import_page(request: Request, error: str | None = None, msg: str | None = None, kind: str | None = None):
        if get_stored_user(client) is None:
            return RedirectResponse(url="/login", status_code=303)
        return templates.TemplateResponse(
            request,
            "import.html",
            {
                "cards": UPLOAD_CARDS,
                "error": error,
                "msg": msg,
                "kind": kind,
                "imports": repo.list_imports(limit=20),
            },
        )

    @app.post("/import/{kind}")
    async def import_submit(request: Request, kind: str):
        if get_stored_user(client) is None:
            return RedirectResponse(url="/login", status_code=303)
        if kind not in UPLOAD_KINDS:
            return _redirect("/import", error="Loại dữ liệu không hợp lệ.")

        form = await request.form()
        upload = form.get("file")
        filename = getattr(upload, "filename", None) or ""
        from_date = _form_str(form, "from_date")
        to_date = _form_str(form, "to_date")
        err = validate_upload(filename, from_date, to_date)
        if err:
            return _redirect("/import", error=err, kind=kind)

        content = await upload.read()
        try:
            result = await upload_csv(
                client,
                file=content,
                filename=filename,
                kind=kind,
                from_date=from_date,
                to_date=to_date,
            )
        except UploadError as e:
            repo.record_import(
                kind=kind,
                filename=filename,
                from_date=from_date,
                to_date=to_date,
                status="error",
                message=str(e),
            )
            return _redirect("/import", error=str(e) or "Đã xảy ra lỗi.", kind=kind)

        repo.record_import(
            kind=kind,
            filename=filename,
            from_date=from_date,
            to_date=to_date,
            status="success",
            message=str(result.get("message") or ""),
        )
        return _redirect("/import", msg="Tải lên thành công!", kind=kind)

    # --- shop settings ---

    @app.get("/settings", response_class=HTMLResponse)
    async def settings_page(request: Request, error: str | None = None, msg: str | None = None):
        if get_stored_user(client) is None:
            return RedirectResponse(url="/login", status_code=303)
        current = await get_settings(client)
        return templates.TemplateResponse(
            request,
            "settings.html",
            {"form": current.to_percent(), "error": error, "msg": msg},
        )

    @app.post("/settings")
    async def settings_submit(request: Request):
        if get_stored_user(client) is None:
            return RedirectResponse(url="/login", status_code=303)
        form = await request.form()
        fee_raw = _form_str(form, "marketing_fee")
        tax_raw = _form_str(form, "sales_tax")
        fee = to_float(fee_raw)
        tax = to_float(tax_raw)
        if not (math.isfinite(fee) and math.isfinite(tax)) or fee < 0 or tax < 0 or fee > 100 or tax > 100:
            return _redirect("/settings", error="Phí và thuế phải nằm trong khoảng 0-100%.")
        percent = ShopSettings(
            marketing_fee=fee,
            sales_tax=tax,
            name=_form_str(form, "name"),
            description=_form_str(form, "description"),
        )
        try:
            saved = await update_settings(client, percent.from_percent())
        except SettingsError as e:
            return _redirect("/settings", error=str(e))
        shop.set(saved)
        return _redirect("/settings", msg="Đã lưu cài đặt cửa hàng.")

    # --- campaign / order link mapping ---

    @app.get("/mapping", response_class=HTMLResponse)
    async def mapping_page(request: Request, q: str = "", error: str | None = None):
        if get_stored_user(client) is None:
            return RedirectResponse(url="/login", status_code=303)
        unmapped = []
        links = []
        load_error = None
        try:
            campaigns, links = await asyncio.gather(
                get_unmapped_campaigns(client),
                get_order_links_with_mappings(client),
            )
            unmapped = [c for c in campaigns if c.unmapped]
        except MappingError as e:
            load_error = str(e) or "Lỗi tải dữ liệu mapping"
        return templates.TemplateResponse(
            request,
            "mapping.html",
            {
                "q": q,
                "term": q.strip().lower(),
                "unmapped": unmapped,
                "links": filter_order_links(links, q),
                "links_total": len(links),
                "error": error or load_error,
            },
        )

    @app.post("/mapping/map")
    async def mapping_map(request: Request):
        if get_stored_user(client) is None:
            return RedirectResponse(url="/login", status_code=303)
        form = await request.form()
        q = _form_str(form, "q")
        try:
            campaign_id = int(_form_str(form, "campaign_id"))
            order_link_id = int(_form_str(form, "order_link_id"))
        except ValueError:
            return _redirect("/mapping", q=q, error="Dữ liệu gán không hợp lệ")
        try:
            await map_campaign_to_order_link(client, campaign_id, order_link_id)
        except MappingError as e:
            return _redirect("/mapping", q=q, error=str(e))
        return _redirect("/mapping", q=q)

    @app.post("/mapping/unmap")
    async def mapping_unmap(request: Request):
        if get_stored_user(client) is None:
            return RedirectResponse(url="/login", status_code=303)
        form = await request.form()
        q = _form_str(form, "q")
        try:
            campaign_id = int(_form_str(form, "campaign_id"))
        except ValueError:
            return _redirect("/mapping", q=q, error="Dữ liệu gán không hợp lệ")
        try:
            await remove_campaign_mapping(client, campaign_id)
        except MappingError as e:
            return _redirect("/mapping", q=q, error=str(e))
        return _redirect("/mapping", q=q)

    @app.get("/healthz")
    def healthz():
        return JSONResponse({"ok": True, "api_url": settings.api_url, "logged_in": get_stored_user(client) is not None})

    return app


def run_web(settings: Settings) -> None:
    app = create_app(settings)
    log.info("serving dashboard on http://%s:%s (backend %s)", settings.web_host, settings.web_port, settings.api_url)
    uvicorn.run(app, host=settings.web_host, port=settings.web_port, log_level=settings.log_level.lower())
