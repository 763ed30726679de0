"""Unit tests for the PostgreSQL URL repository."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.exceptions import AlreadyExistsError
from shortener.models import URL
from shortener.repositories import PostgresURLRepository


@pytest.fixture
def mock_database() -> AsyncMock:
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    return db


@pytest.fixture
def url_repository(mock_database) -> PostgresURLRepository:
    return PostgresURLRepository(mock_database, timeout=1.0)


@pytest.mark.asyncio
async def test_create_stamps_and_commits(url_repository, mock_database) -> None:
    url = URL(short_code="abc123", original_url="https://example.com")

    created = await url_repository.create(url)

    assert created is url
    assert url.is_active is True
    assert url.clicks == 0
    assert url.created_at is not None
    assert url.created_at == url.updated_at
    mock_database.add.assert_called_once_with(url)
    mock_database.commit.assert_called_once()
    mock_database.refresh.assert_called_once_with(url)


@pytest.mark.asyncio
async def test_create_duplicate_raises_already_exists(url_repository, mock_database) -> None:
    mock_database.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

    with pytest.raises(AlreadyExistsError) as exc_info:
        await url_repository.create(URL(short_code="taken1", original_url="https://example.com"))

    assert exc_info.value.short_code == "taken1"
    mock_database.rollback.assert_called_once()
    mock_database.refresh.assert_not_called()


@pytest.mark.asyncio
async def test_create_other_errors_propagate(url_repository, mock_database) -> None:
    mock_database.commit.side_effect = RuntimeError("connection lost")
    with pytest.raises(RuntimeError, match="connection lost"):
        await url_repository.create(URL(short_code="abc123", original_url="https://example.com"))


@pytest.mark.asyncio
async def test_get_by_code_found(url_repository, mock_database) -> None:
    url = URL(short_code="abc123", original_url="https://example.com", is_active=True)
    result = MagicMock()
    result.scalar_one_or_none.return_value = url
    mock_database.execute.return_value = result

    assert await url_repository.get_by_code("abc123") is url

    statement = mock_database.execute.call_args.args[0]
    compiled = str(statement.compile(compile_kwargs={"literal_binds": True}))
    assert "urls.short_code = 'abc123'" in compiled
    assert "urls.is_active IS" in compiled


@pytest.mark.asyncio
async def test_get_by_code_missing(url_repository, mock_database) -> None:
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    mock_database.execute.return_value = result

    assert await url_repository.get_by_code("nope") is None
