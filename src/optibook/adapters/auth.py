"""Optimistic session handling: login, signup, logout and profile edits."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from optibook._transport import DataApi
from optibook.exceptions import OptibookError
from optibook.forms import FormOptions, OptimisticForm
from optibook.models._base import camel_patch, unwrap
from optibook.models.user import AuthState, LoginData, SignupData, User
from optibook.state.records import merge_partial, revert_fields, touched_fields

_logger = logging.getLogger(__name__)

_SIGNED_OUT = AuthState()


class OptimisticAuth:
    """Auth state that flips to ``is_optimistic`` while a call is in flight.

    ``is_loading`` covers the session-changing calls (login, signup, logout,
    :meth:`check_auth`); profile, password and account calls only raise the
    optimistic flag.
    """

    def __init__(self, api: DataApi) -> None:
        self._api = api
        self.state = _SIGNED_OUT
        self.login_form: OptimisticForm[LoginData, User] = OptimisticForm(
            LoginData(),
            self._login_call,
            FormOptions(
                success_message="Login successful!",
                error_message="Login failed. Please check your credentials.",
                on_success=self._signed_in,
                on_error=self._settle,
            ),
        )
        self.signup_form: OptimisticForm[SignupData, User] = OptimisticForm(
            SignupData(),
            self._signup_call,
            FormOptions(
                success_message="Account created successfully!",
                error_message="Signup failed. Please try again.",
                on_success=self._signed_in,
                on_error=self._settle,
            ),
        )

    @property
    def user(self) -> User | None:
        return self.state.user

    @property
    def is_authenticated(self) -> bool:
        return self.state.is_authenticated

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    @property
    def is_optimistic(self) -> bool:
        return self.state.is_optimistic

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _begin(self, *, loading: bool) -> None:
        update: dict[str, Any] = {"is_optimistic": True}
        if loading:
            update["is_loading"] = True
        self.state = self.state.model_copy(update=update)

    def _settle(self, _exc: BaseException | None = None) -> None:
        self.state = self.state.model_copy(update={"is_loading": False, "is_optimistic": False})

    def _signed_in(self, user: User) -> None:
        self.state = AuthState(user=user, is_authenticated=True)

    def _signed_out(self) -> None:
        self.state = _SIGNED_OUT

    # ------------------------------------------------------------------
    # Confirmation calls
    # ------------------------------------------------------------------

    async def _login_call(self, data: LoginData) -> User:
        payload = await self._api.request("POST", "/api/auth/login", json_body=data.to_api())
        return User.model_validate(unwrap(payload, "user"))

    async def _signup_call(self, data: SignupData) -> User:
        payload = await self._api.request("POST", "/api/auth/signup", json_body=data.to_api())
        return User.model_validate(unwrap(payload, "user"))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def login(self, data: LoginData | None = None) -> User:
        """Submit the login form, or ``data`` when given.

        Raises :class:`~optibook.exceptions.OptibookValidationError` for empty
        fields without calling the API.
        """
        self._begin(loading=True)
        try:
            return await self.login_form.submit(data)
        except Exception:
            self._settle()
            raise

    async def signup(self, data: SignupData | None = None) -> User:
        self._begin(loading=True)
        try:
            return await self.signup_form.submit(data)
        except Exception:
            self._settle()
            raise

    async def logout(self) -> None:
        self._begin(loading=True)
        try:
            await self._api.request("POST", "/api/auth/logout")
        except Exception:
            self._settle()
            raise
        self._signed_out()

    async def update_profile(self, updates: Mapping[str, Any]) -> User | None:
        """Show the edited profile at once; undo the edited fields on failure."""
        previous = self.state.user
        if previous is None:
            return None

        prior = touched_fields(previous, updates)
        self.state = self.state.model_copy(
            update={"user": merge_partial(previous, updates), "is_optimistic": True}
        )
        try:
            payload = await self._api.request("PATCH", "/api/auth/profile", json_body=camel_patch(updates))
        except Exception:
            current = self.state.user
            restored = revert_fields(current, prior) if current is not None else None
            self.state = self.state.model_copy(update={"user": restored, "is_optimistic": False})
            raise
        user = User.model_validate(unwrap(payload, "user"))
        self.state = self.state.model_copy(update={"user": user, "is_optimistic": False})
        return user

    async def change_password(self, current_password: str, new_password: str) -> bool:
        self._begin(loading=False)
        try:
            await self._api.request(
                "POST",
                "/api/auth/change-password",
                json_body={"currentPassword": current_password, "newPassword": new_password},
            )
        finally:
            self._settle()
        return True

    async def delete_account(self) -> bool:
        self._begin(loading=False)
        try:
            await self._api.request("DELETE", "/api/auth/delete-account")
        except Exception:
            self._settle()
            raise
        self._signed_out()
        return True

    async def check_auth(self) -> User | None:
        """Load the current session. Any API or transport error means signed out."""
        self.state = self.state.model_copy(update={"is_loading": True})
        try:
            payload = await self._api.request("GET", "/api/auth/me")
            user = User.model_validate(unwrap(payload, "user"))
        except OptibookError as exc:
            _logger.debug("No active session: %s", exc)
            self._signed_out()
            return None
        self._signed_in(user)
        return user
