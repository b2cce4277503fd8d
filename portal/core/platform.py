"""Thin adapter over the Supabase SDK.

Routes never talk to the SDK directly: they depend on ``get_platform`` so the
identity and storage calls can be replaced in tests. Two clients exist:

* the public client, built with the anon key, used for the operations a
  browser would perform (sign-up, sign-in, OAuth, password recovery);
* the admin client, built with the service role key, used only for
  invitations and account administration. It is created lazily so a process
  that never handles those routes never loads the key into a client.

Storage calls run with the caller's access token so bucket policies apply to
the user, not to the server.
"""

from functools import lru_cache

from supabase import Client, ClientOptions, create_client

from portal.core import config

UNKNOWN_ERROR_MESSAGE = "Ocorreu um erro desconhecido."


class PlatformError(Exception):
    """A call to the identity or storage service failed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def describe_error(error: object, fallback: str = UNKNOWN_ERROR_MESSAGE) -> str:
    if isinstance(error, str):
        return error or fallback
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    if isinstance(error, Exception) and str(error):
        return str(error)
    return fallback


class StorageBucket:
    def __init__(self, client: Client, bucket: str):
        self._bucket = client.storage.from_(bucket)
        self.name = bucket

    def upload(self, path: str, data: bytes, content_type: str, upsert: bool = False) -> None:
        try:
            self._bucket.upload(
                path,
                data,
                file_options={"content-type": content_type, "upsert": "true" if upsert else "false"},
            )
        except Exception as exc:
            raise PlatformError(describe_error(exc)) from exc

    def get_public_url(self, path: str) -> str:
        return self._bucket.get_public_url(path)

    def remove(self, path: str) -> None:
        try:
            self._bucket.remove([path])
        except Exception as exc:
            raise PlatformError(describe_error(exc)) from exc


class PortalPlatform:
    def __init__(self, url: str, anon_key: str, service_role_key: str):
        self._url = url
        self._anon_key = anon_key
        self._service_role_key = service_role_key
        self._public_client: Client | None = None
        self._admin_client: Client | None = None

    @property
    def public(self) -> Client:
        if self._public_client is None:
            self._public_client = create_client(
                self._url,
                self._anon_key,
                options=ClientOptions(auto_refresh_token=False, persist_session=False),
            )
        return self._public_client

    @property
    def admin(self) -> Client:
        if self._admin_client is None:
            if not self._service_role_key:
                raise PlatformError("SUPABASE_SERVICE_ROLE_KEY is not configured.")
            self._admin_client = create_client(
                self._url,
                self._service_role_key,
                options=ClientOptions(auto_refresh_token=False, persist_session=False),
            )
        return self._admin_client

    def bucket(self, name: str, access_token: str) -> StorageBucket:
        client = create_client(
            self._url,
            self._anon_key,
            options=ClientOptions(
                headers={"Authorization": f"Bearer {access_token}"},
                auto_refresh_token=False,
                persist_session=False,
            ),
        )
        return StorageBucket(client, name)

    def sign_up(self, email: str, password: str, metadata: dict) -> str | None:
        try:
            response = self.public.auth.sign_up(
                {"email": email, "password": password, "options": {"data": metadata}}
            )
        except Exception as exc:
            raise PlatformError(describe_error(exc)) from exc
        user = response.user
        # Repeated sign-ups for a registered email get a placeholder user with no identities.
        if user is None or not user.identities:
            return None
        return user.id

    def sign_in(self, email: str, password: str) -> dict:
        try:
            response = self.public.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as exc:
            raise PlatformError(describe_error(exc)) from exc
        if response.session is None or response.user is None:
            raise PlatformError("No session returned by the identity service.")
        return {
            "user_id": response.user.id,
            "access_token": response.session.access_token,
            "refresh_token": response.session.refresh_token,
            "expires_in": response.session.expires_in,
        }

    def oauth_url(self, provider: str, redirect_to: str) -> str:
        try:
            response = self.public.auth.sign_in_with_oauth(
                {"provider": provider, "options": {"redirect_to": redirect_to}}
            )
        except Exception as exc:
            raise PlatformError(describe_error(exc)) from exc
        return response.url

    def send_password_reset(self, email: str, redirect_to: str) -> None:
        try:
            self.public.auth.reset_password_for_email(email, {"redirect_to": redirect_to})
        except Exception as exc:
            raise PlatformError(describe_error(exc)) from exc

    def update_password(self, user_id: str, password: str) -> None:
        try:
            self.admin.auth.admin.update_user_by_id(user_id, {"password": password})
        except PlatformError:
            raise
        except Exception as exc:
            raise PlatformError(describe_error(exc)) from exc

    def sign_out(self, access_token: str) -> None:
        try:
            self.admin.auth.admin.sign_out(access_token)
        except PlatformError:
            raise
        except Exception as exc:
            raise PlatformError(describe_error(exc)) from exc

    def invite_user(self, email: str, metadata: dict, redirect_to: str = "") -> None:
        options = {"data": metadata}
        if redirect_to:
            options["redirect_to"] = redirect_to
        try:
            self.admin.auth.admin.invite_user_by_email(email, options)
        except PlatformError:
            raise
        except Exception as exc:
            raise PlatformError(describe_error(exc)) from exc


@lru_cache
def get_platform() -> PortalPlatform:
    return PortalPlatform(
        url=config.SUPABASE_URL,
        anon_key=config.SUPABASE_ANON_KEY,
        service_role_key=config.SUPABASE_SERVICE_ROLE_KEY,
    )
