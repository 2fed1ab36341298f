from __future__ import annotations

import logging
from typing import Any

import httpx

from affdash.client.base import ApiError, BackendClient, error_text
from affdash.models import User


log = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthError(ApiError):
    pass


def mock_user(username: str) -> User:
    return User(
        id="mock-user-123",
        username=username,
        email=f"{username.lower()}@example.com",
        token="mock-jwt-token-xyz",
    )


def validate_login_form(username: str, password: str) -> str | None:
    if not username.strip() or not password:
        return "Vui lòng nhập tên đăng nhập và mật khẩu."
    return None


def validate_register_form(
    username: str,
    password: str,
    confirm_password: str,
    shop_name: str,
) -> str | None:
    if not username.strip() or not shop_name.strip() or not password or not confirm_password:
        return "Vui lòng điền đầy đủ thông tin."
    if password != confirm_password:
        return "Mật khẩu xác nhận không khớp."
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Mật khẩu phải có ít nhất {MIN_PASSWORD_LENGTH} ký tự."
    return None


def _login_error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        return str(data.get("message") or "Đăng nhập thất bại")
    return error_text(resp) or f"Lỗi đăng nhập: {resp.status_code}"


def _persist(client: BackendClient, data: Any) -> User:
    if not isinstance(data, dict) or not data.get("token"):
        raise AuthError("Phản hồi xác thực không hợp lệ")
    raw_user = data.get("user") or {}
    if not isinstance(raw_user, dict):
        raise AuthError("Phản hồi xác thực không hợp lệ")
    token = str(data["token"])
    user = User.from_api(raw_user, token=token)
    client.repo.save_session(user.to_dict(), token)
    return user


async def login_user(
    client: BackendClient,
    username: str,
    password: str,
    *,
    mock_fallback: bool = True,
) -> User:
    """
    POST /auth/login and persist the session.

    With `mock_fallback` any failure (offline backend, rejected credentials)
    yields a mock user so the dashboard stays usable without a backend.
    """
    try:
        resp = await client.request(
            "POST",
            "/auth/login",
            authenticated=False,
            json={"username": username, "password": password},
        )
        if not resp.is_success:
            raise AuthError(_login_error_message(resp))
        return _persist(client, resp.json())
    except (httpx.HTTPError, ValueError, AuthError) as e:
        if not mock_fallback:
            if isinstance(e, AuthError):
                raise
            raise AuthError(f"Lỗi đăng nhập: {e}") from e
        log.warning("login failed (%s: %s), falling back to mock user", type(e).__name__, e)
        user = mock_user(username)
        client.repo.save_session(user.to_dict(), user.token or "")
        return user


async def register_user(
    client: BackendClient,
    username: str,
    password: str,
    shop_name: str,
    shop_description: str,
) -> User:
    try:
        resp = await client.request(
            "POST",
            "/auth/register",
            authenticated=False,
            json={
                "username": username,
                "password": password,
                "shopName": shop_name,
                "shopDescription": shop_description,
            },
        )
    except httpx.HTTPError as e:
        log.error("register request failed: %s: %s", type(e).__name__, e)
        raise AuthError("Đăng ký thất bại") from e

    if not resp.is_success:
        raise AuthError(error_text(resp) or "Đăng ký thất bại")
    try:
        return _persist(client, resp.json())
    except ValueError as e:
        raise AuthError("Đăng ký thất bại") from e


def logout_user(client: BackendClient) -> None:
    client.repo.clear_session()


def get_stored_user(client: BackendClient) -> User | None:
    raw = client.repo.get_session_user()
    if raw is None:
        return None
    return User.from_api(raw)
