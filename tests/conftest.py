import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from portal.core.platform import PlatformError  # noqa: E402
from portal.database import Base  # noqa: E402
from portal.models.document import Document  # noqa: E402
from portal.models.profile import Profile  # noqa: E402


class FakeBucket:
    def __init__(self, name: str = 'uploads', upload_error: Exception | None = None):
        self.name = name
        self.upload_error = upload_error
        self.objects: dict[str, bytes] = {}
        self.calls: list[tuple] = []

    def upload(self, path: str, data: bytes, content_type: str, upsert: bool = False) -> None:
        self.calls.append(('upload', path, content_type, upsert))
        if self.upload_error is not None:
            raise self.upload_error
        if path in self.objects and not upsert:
            raise PlatformError('The resource already exists')
        self.objects[path] = data

    def get_public_url(self, path: str) -> str:
        self.calls.append(('get_public_url', path))
        return f'https://project.supabase.co/storage/v1/object/public/{self.name}/{path}'

    def remove(self, path: str) -> None:
        self.calls.append(('remove', path))
        self.objects.pop(path, None)


class FakePlatform:
    def __init__(self):
        self.buckets: dict[str, FakeBucket] = {}
        self.calls: list[tuple] = []
        self.error: PlatformError | None = None
        self.user_id = 'new-user'

    def _record(self, *call) -> None:
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    def bucket(self, name: str, access_token: str) -> FakeBucket:
        self.calls.append(('bucket', name, access_token))
        return self.buckets.setdefault(name, FakeBucket(name))

    def sign_up(self, email: str, password: str, metadata: dict) -> str:
        self._record('sign_up', email, metadata)
        return self.user_id

    def sign_in(self, email: str, password: str) -> dict:
        self._record('sign_in', email)
        return {
            'user_id': self.user_id,
            'access_token': 'access-token',
            'refresh_token': 'refresh-token',
            'expires_in': 3600,
        }

    def oauth_url(self, provider: str, redirect_to: str) -> str:
        self._record('oauth_url', provider, redirect_to)
        return f'https://project.supabase.co/auth/v1/authorize?provider={provider}'

    def send_password_reset(self, email: str, redirect_to: str) -> None:
        self._record('send_password_reset', email, redirect_to)

    def update_password(self, user_id: str, password: str) -> None:
        self._record('update_password', user_id)

    def sign_out(self, access_token: str) -> None:
        self._record('sign_out', access_token)

    def invite_user(self, email: str, metadata: dict, redirect_to: str = '') -> None:
        self._record('invite_user', email, metadata)


@pytest.fixture
def fake_platform():
    return FakePlatform()


@pytest.fixture
def fake_bucket():
    return FakeBucket()


@pytest.fixture
def portal_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=[Profile.__table__, Document.__table__])

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=[Document.__table__, Profile.__table__])


@pytest.fixture
def add_profile(portal_db):
    def _add_profile(user_id: str, role: str = 'student', **fields) -> Profile:
        profile = Profile(id=user_id, role=role, **fields)
        portal_db.add(profile)
        portal_db.commit()
        return profile

    return _add_profile


@pytest.fixture
def make_bucket():
    return FakeBucket
