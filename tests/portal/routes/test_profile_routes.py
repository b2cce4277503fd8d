import asyncio
from datetime import date
from io import BytesIO

import pytest
from fastapi import HTTPException, UploadFile
from pydantic import ValidationError
from starlette.datastructures import Headers

from portal.auth.dependencies import AuthorizedSession
from portal.routes.profile_routes import avatar_path, read_profile, update_profile, upload_avatar
from portal.schemas import ProfileUpdateRequest

STUDENT = AuthorizedSession(user_id='s1', email='aluno@escola.br', access_token='token-s1', role='student')


def _form(**overrides) -> ProfileUpdateRequest:
    fields = {
        'full_name': ' Bruno Lima ',
        'birth_date': '2008-04-12',
        'school': 'Escola Estadual Cuiabá',
        'class_name': '3A',
        'period': 'Manhã',
        'about_me': 'Gosto de música',
        'dreams': '',
        'skills': None,
    }
    fields.update(overrides)
    return ProfileUpdateRequest(**fields)


def _upload(data: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(file=BytesIO(data), filename=filename, headers=Headers({'content-type': content_type}))


def test_profile_update_request_normalizes_fields() -> None:
    form = _form()

    assert form.full_name == 'Bruno Lima'
    assert form.birth_date == date(2008, 4, 12)
    assert form.dreams is None


@pytest.mark.parametrize(
    'overrides',
    [
        {'full_name': 'Bo'},
        {'school': 'EE'},
        {'class_name': '  '},
        {'period': 'Madrugada'},
        {'role': 'teacher'},
    ],
)
def test_profile_update_request_rejects_invalid_fields(overrides) -> None:
    with pytest.raises(ValidationError):
        _form(**overrides)


def test_read_profile_returns_own_profile(portal_db, add_profile) -> None:
    add_profile('s1', full_name='Bruno Lima')

    profile = read_profile(session=STUDENT, db=portal_db)

    assert profile.id == 's1'
    assert profile.full_name == 'Bruno Lima'


def test_read_profile_returns_not_found_when_missing(portal_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        read_profile(session=STUDENT, db=portal_db)

    assert exception_info.value.status_code == 404


def test_update_profile_saves_fields_and_keeps_role(portal_db, add_profile) -> None:
    add_profile('s1', full_name='B', email='aluno@escola.br')

    profile = update_profile(data=_form(), session=STUDENT, db=portal_db)

    assert profile.full_name == 'Bruno Lima'
    assert profile.school == 'Escola Estadual Cuiabá'
    assert profile.period == 'Manhã'
    assert profile.role == 'student'
    assert profile.email == 'aluno@escola.br'
    assert profile.last_updated_at is not None


def test_update_payload_has_no_role_field() -> None:
    assert 'role' not in _form().model_dump()


@pytest.mark.parametrize(
    ('filename', 'expected'),
    [
        ('foto.JPG', 's1/avatar.jpg'),
        ('retrato.final.png', 's1/avatar.png'),
        ('semextensao', 's1/avatar.png'),
    ],
)
def test_avatar_path_is_one_object_per_account(filename: str, expected: str) -> None:
    assert avatar_path('s1', filename) == expected


def test_upload_avatar_overwrites_in_place_and_stores_url(portal_db, add_profile, fake_platform) -> None:
    add_profile('s1')

    profile = asyncio.run(
        upload_avatar(
            file=_upload(b'\x89PNG', 'foto.png', 'image/png'),
            session=STUDENT,
            db=portal_db,
            platform=fake_platform,
        )
    )

    bucket = fake_platform.buckets['avatars']
    assert bucket.calls[0] == ('upload', 's1/avatar.png', 'image/png', True)
    assert profile.avatar_url == 'https://project.supabase.co/storage/v1/object/public/avatars/s1/avatar.png'
    assert ('bucket', 'avatars', 'token-s1') in fake_platform.calls


def test_upload_avatar_rejects_non_images(portal_db, add_profile, fake_platform) -> None:
    add_profile('s1')

    with pytest.raises(HTTPException) as exception_info:
        asyncio.run(
            upload_avatar(
                file=_upload(b'%PDF', 'cv.pdf', 'application/pdf'),
                session=STUDENT,
                db=portal_db,
                platform=fake_platform,
            )
        )

    assert exception_info.value.status_code == 400
    assert fake_platform.calls == []
