from types import SimpleNamespace

import pytest

from portal.core.platform import PlatformError, PortalPlatform


class _FakeAuth:
    def __init__(self, response=None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def sign_up(self, credentials: dict):
        self.calls.append(credentials)
        if self.error is not None:
            raise self.error
        return self.response


def _platform_with(auth: _FakeAuth) -> PortalPlatform:
    platform = PortalPlatform('https://project.supabase.co', 'anon-key', '')
    platform._public_client = SimpleNamespace(auth=auth)
    return platform


def test_sign_up_returns_new_account_id() -> None:
    user = SimpleNamespace(id='new-user', identities=[SimpleNamespace(provider='email')])
    auth = _FakeAuth(response=SimpleNamespace(user=user))

    user_id = _platform_with(auth).sign_up('aluno@escola.br', 'segredo1', {'role': 'student'})

    assert user_id == 'new-user'
    assert auth.calls[0]['options'] == {'data': {'role': 'student'}}


@pytest.mark.parametrize('identities', [[], None])
def test_sign_up_ignores_placeholder_user_for_registered_email(identities) -> None:
    user = SimpleNamespace(id='made-up-id', identities=identities)
    auth = _FakeAuth(response=SimpleNamespace(user=user))

    assert _platform_with(auth).sign_up('aluno@escola.br', 'segredo1', {'role': 'student'}) is None


def test_sign_up_wraps_identity_service_errors() -> None:
    auth = _FakeAuth(error=RuntimeError('Signups not allowed for this instance'))

    with pytest.raises(PlatformError) as exception_info:
        _platform_with(auth).sign_up('aluno@escola.br', 'segredo1', {})

    assert exception_info.value.message == 'Signups not allowed for this instance'
