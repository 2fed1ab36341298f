from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from pathlib import Path

import typer

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
from affdash.client.stats import QUERY_TYPES, fetch_dashboard_data, fetch_recommendations
from affdash.client.uploads import UploadError, upload_csv_path, validate_upload
from affdash.config import Settings
from affdash.dashboard import ALL_CAMPAIGNS, day_details, default_date_range, pivot_chart_data, summarize
from affdash.db import LocalDB
from affdash.models import ShopSettings
from affdash.recommend import select_recommendations
from affdash.repo import Repo
from affdash.util import parse_day, today_local
from affdash.web.app import run_web

app = typer.Typer(no_args_is_help=True)
import_app = typer.Typer(no_args_is_help=True)
settings_app = typer.Typer(no_args_is_help=True)
mapping_app = typer.Typer(no_args_is_help=True)
app.add_typer(import_app, name="import")
app.add_typer(settings_app, name="settings")
app.add_typer(mapping_app, name="mapping")


def _setup() -> tuple[Settings, Repo, BackendClient]:
    settings = Settings.load()
    settings.configure_logging()
    LocalDB(settings.db_path).init()
    repo = Repo(settings.db_path)
    client = BackendClient(settings.api_url, repo=repo, timeout=settings.http_timeout)
    return settings, repo, client


def _fail(msg: str) -> None:
    typer.echo(f"ERROR: {msg}")
    raise typer.Exit(code=2)


def _require_login(client: BackendClient) -> None:
    if get_stored_user(client) is None:
        _fail("not logged in (run `affdash login`)")


def _window(settings: Settings, start: str | None, end: str | None) -> tuple[str, str]:
    default_start, default_end = default_date_range(today_local(settings.timezone))
    out = []
    for raw, default, label in ((start, default_start, "start"), (end, default_end, "end")):
        if raw is None:
            out.append(default)
            continue
        d = parse_day(raw)
        if d is None:
            _fail(f"{label} must be YYYY-MM-DD")
        out.append(d.isoformat())
    return out[0], out[1]


def _check_query_type(query_type: str) -> str:
    if query_type not in QUERY_TYPES:
        _fail(f"type must be one of: {', '.join(QUERY_TYPES)}")
    return query_type


@app.command("db")
def db_cmd(
    action: str = typer.Argument(..., help="init"),
) -> None:
    settings = Settings.load()
    if action == "init":
        LocalDB(settings.db_path).init()
        typer.echo(f"OK db init: {settings.db_path}")
        return
    raise typer.BadParameter("action must be: init")


@app.command("web")
def web_cmd() -> None:
    settings = Settings.load()
    settings.configure_logging()
    run_web(settings)


@app.command("login")
def login_cmd(
    username: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
) -> None:
    settings, _repo, client = _setup()
    err = validate_login_form(username.strip(), password)
    if err:
        _fail(err)
    try:
        user = asyncio.run(login_user(client, username.strip(), password, mock_fallback=settings.mock_fallback))
    except AuthError as e:
        _fail(str(e))
    typer.echo(f"OK logged in as {user.username}")


@app.command("register")
def register_cmd(
    username: str = typer.Option(..., prompt=True),
    shop_name: str = typer.Option(..., prompt=True),
    shop_description: str = typer.Option("", help="Optional shop description"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    _settings, _repo, client = _setup()
    err = validate_register_form(username.strip(), password, password, shop_name.strip())
    if err:
        _fail(err)
    try:
        user = asyncio.run(register_user(client, username.strip(), password, shop_name.strip(), shop_description.strip()))
    except AuthError as e:
        _fail(str(e))
    typer.echo(f"OK registered {user.username}")


@app.command("logout")
def logout_cmd() -> None:
    _settings, _repo, client = _setup()
    logout_user(client)
    typer.echo("OK logged out")


@app.command("whoami")
def whoami_cmd() -> None:
    _settings, _repo, client = _setup()
    user = get_stored_user(client)
    if user is None:
        _fail("not logged in")
    typer.echo(json_dumps(user.to_dict()))


@app.command("stats")
def stats_cmd(
    start: str | None = typer.Option(None, help="YYYY-MM-DD. Defaults to 9 days before `end`."),
    end: str | None = typer.Option(None, help="YYYY-MM-DD. Defaults to today."),
    campaign: str = typer.Option(ALL_CAMPAIGNS, help="Campaign name, or `all`"),
    query_type: str = typer.Option("clickTime", "--type", help="clickTime|orderTime"),
    active: bool = typer.Option(False, help="Only count campaigns with activity"),
) -> None:
    """Per-day totals and KPI summary for a date window."""
    settings, _repo, client = _setup()
    _require_login(client)
    start_s, end_s = _window(settings, start, end)
    qt = _check_query_type(query_type)

    async def _run():
        shop = await get_settings(client)
        daily = await fetch_dashboard_data(client, start_s, end_s, qt)
        return shop, daily

    shop, daily = asyncio.run(_run())
    points, in_view = pivot_chart_data(
        daily,
        start=start_s,
        end=end_s,
        campaign=campaign,
        only_active=active,
        settings=shop,
    )
    res = {
        "start": start_s,
        "end": end_s,
        "type": qt,
        "campaigns": in_view,
        "kpi": asdict(summarize(points)),
        "days": [
            {
                "date": p.date,
                "totalOrders": p.total_orders,
                "totalSpent": p.total_spent,
                "totalCommission": p.total_commission,
                "totalNetProfit": p.total_net_profit,
            }
            for p in points
        ],
    }
    typer.echo(json_dumps(res))


@app.command("details")
def details_cmd(
    day: str = typer.Argument(..., help="YYYY-MM-DD"),
    query_type: str = typer.Option("clickTime", "--type", help="clickTime|orderTime"),
) -> None:
    _settings, _repo, client = _setup()
    _require_login(client)
    d = parse_day(day)
    if d is None:
        _fail("day must be YYYY-MM-DD")
    qt = _check_query_type(query_type)
    daily = asyncio.run(fetch_dashboard_data(client, d.isoformat(), d.isoformat(), qt))
    typer.echo(json_dumps(day_details(daily, d.isoformat())))


@app.command("recommend")
def recommend_cmd(
    start: str | None = typer.Option(None, help="YYYY-MM-DD, window for local rules"),
    end: str | None = typer.Option(None, help="YYYY-MM-DD, window for local rules"),
) -> None:
    """Backend recommendations, or ROAS rules over the window when the backend has none."""
    settings, _repo, client = _setup()
    _require_login(client)
    start_s, end_s = _window(settings, start, end)

    async def _run():
        return await asyncio.gather(
            fetch_recommendations(client),
            fetch_dashboard_data(client, start_s, end_s),
            get_settings(client),
        )

    backend, daily, shop = asyncio.run(_run())
    recs = select_recommendations(backend, daily, shop)
    typer.echo(json_dumps([asdict(r) for r in recs]))


def _import(kind: str, file: Path, from_date: str, to_date: str) -> None:
    _settings, repo, client = _setup()
    _require_login(client)
    err = validate_upload(file.name, from_date, to_date)
    if err:
        _fail(err)
    try:
        res = asyncio.run(upload_csv_path(client, path=file, kind=kind, from_date=from_date, to_date=to_date))
    except UploadError as e:
        repo.record_import(
            kind=kind,
            filename=file.name,
            from_date=from_date,
            to_date=to_date,
            status="error",
            message=str(e),
        )
        _fail(str(e) or "upload failed")
    repo.record_import(
        kind=kind,
        filename=file.name,
        from_date=from_date,
        to_date=to_date,
        status="success",
        message=str(res.get("message") or ""),
    )
    typer.echo(json_dumps(res))


@import_app.command("ad")
def import_ad_cmd(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Ads report CSV"),
    from_date: str = typer.Option(..., "--from", help="YYYY-MM-DD"),
    to_date: str = typer.Option(..., "--to", help="YYYY-MM-DD"),
) -> None:
    _import("ad", file, from_date, to_date)


@import_app.command("order")
def import_order_cmd(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Orders export CSV"),
    from_date: str = typer.Option(..., "--from", help="YYYY-MM-DD"),
    to_date: str = typer.Option(..., "--to", help="YYYY-MM-DD"),
) -> None:
    _import("order", file, from_date, to_date)


@import_app.command("history")
def import_history_cmd(
    kind: str | None = typer.Option(None, help="ad|order"),
    limit: int = typer.Option(20),
) -> None:
    _settings, repo, _client = _setup()
    typer.echo(json_dumps(repo.list_imports(kind=kind, limit=limit)))


@settings_app.command("show")
def settings_show_cmd() -> None:
    _settings, _repo, client = _setup()
    _require_login(client)
    shop = asyncio.run(get_settings(client))
    typer.echo(json_dumps(asdict(shop.to_percent())))


@settings_app.command("set")
def settings_set_cmd(
    marketing_fee: float | None = typer.Option(None, help="Percent, 0-100"),
    sales_tax: float | None = typer.Option(None, help="Percent, 0-100"),
    name: str | None = typer.Option(None),
    description: str | None = typer.Option(None),
) -> None:
    _settings, _repo, client = _setup()
    _require_login(client)
    for label, v in (("marketing_fee", marketing_fee), ("sales_tax", sales_tax)):
        if v is not None and not 0 <= v <= 100:
            _fail(f"{label} must be between 0 and 100")

    async def _run() -> ShopSettings:
        cur = (await get_settings(client)).to_percent()
        updated = ShopSettings(
            marketing_fee=cur.marketing_fee if marketing_fee is None else marketing_fee,
            sales_tax=cur.sales_tax if sales_tax is None else sales_tax,
            name=cur.name if name is None else name.strip(),
            description=cur.description if description is None else description.strip(),
        )
        return await update_settings(client, updated.from_percent())

    try:
        saved = asyncio.run(_run())
    except SettingsError as e:
        _fail(str(e))
    typer.echo(json_dumps(asdict(saved.to_percent())))


@mapping_app.command("list")
def mapping_list_cmd(
    q: str = typer.Option("", help="Filter order links by link or campaign name"),
) -> None:
    _settings, _repo, client = _setup()
    _require_login(client)

    async def _run():
        return await asyncio.gather(get_unmapped_campaigns(client), get_order_links_with_mappings(client))

    try:
        campaigns, links = asyncio.run(_run())
    except MappingError as e:
        _fail(str(e))
    res = {
        "unmapped": [asdict(c) for c in campaigns if c.unmapped],
        "orderLinks": [asdict(link) for link in filter_order_links(links, q)],
    }
    typer.echo(json_dumps(res))


@mapping_app.command("map")
def mapping_map_cmd(
    campaign_id: int = typer.Argument(...),
    order_link_id: int = typer.Argument(...),
) -> None:
    _settings, _repo, client = _setup()
    _require_login(client)
    try:
        asyncio.run(map_campaign_to_order_link(client, campaign_id, order_link_id))
    except MappingError as e:
        _fail(str(e))
    typer.echo(f"OK mapped campaign {campaign_id} -> order link {order_link_id}")


@mapping_app.command("unmap")
def mapping_unmap_cmd(
    campaign_id: int = typer.Argument(...),
) -> None:
    _settings, _repo, client = _setup()
    _require_login(client)
    try:
        asyncio.run(remove_campaign_mapping(client, campaign_id))
    except MappingError as e:
        _fail(str(e))
    typer.echo(f"OK unmapped campaign {campaign_id}")


def json_dumps(obj) -> str:
    return json.dumps(obj, ensure_ascii=False, indent=2)
