"""Unit tests for fetching.token_provider module"""

import pytest

from vmcatalog.errors import TokenAcquisitionError
from vmcatalog.fetching.token_provider import (
    EnvironmentTokenProvider,
    StaticTokenProvider,
    TokenProvider,
    acquire_token,
)


class TestTokenProviders:

    def test_static_provider(self):
        assert StaticTokenProvider('abc').get_access_token() == 'abc'

    def test_static_provider_without_token(self):
        with pytest.raises(TokenAcquisitionError):
            StaticTokenProvider('').get_access_token()

    def test_environment_provider(self, monkeypatch):
        monkeypatch.setenv('AZURE_ACCESS_TOKEN', ' from-env \n')
        assert EnvironmentTokenProvider().get_access_token() == 'from-env'

    def test_environment_provider_custom_variable(self, monkeypatch):
        monkeypatch.setenv('MY_TOKEN', 'custom')
        assert EnvironmentTokenProvider('MY_TOKEN').get_access_token() == 'custom'

    def test_environment_provider_unset(self, monkeypatch):
        monkeypatch.delenv('AZURE_ACCESS_TOKEN', raising=False)
        with pytest.raises(TokenAcquisitionError):
            EnvironmentTokenProvider().get_access_token()

    def test_providers_satisfy_protocol(self):
        assert isinstance(StaticTokenProvider('x'), TokenProvider)
        assert isinstance(EnvironmentTokenProvider(), TokenProvider)


class TestAcquireToken:

    @pytest.mark.asyncio
    async def test_sync_provider(self):
        assert await acquire_token(StaticTokenProvider('sync')) == 'sync'

    @pytest.mark.asyncio
    async def test_async_provider(self):
        class AsyncProvider:
            async def get_access_token(self):
                return 'async'

        assert await acquire_token(AsyncProvider()) == 'async'

    @pytest.mark.asyncio
    async def test_missing_provider(self):
        with pytest.raises(TokenAcquisitionError):
            await acquire_token(None)

    @pytest.mark.asyncio
    async def test_provider_exception_is_wrapped(self):
        class FailingProvider:
            def get_access_token(self):
                raise OSError('keyring locked')

        with pytest.raises(TokenAcquisitionError) as exc_info:
            await acquire_token(FailingProvider())

        assert 'keyring locked' in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize('token', ['', None, 42])
    async def test_empty_token_rejected(self, token):
        class OddProvider:
            def get_access_token(self):
                return token

        with pytest.raises(TokenAcquisitionError):
            await acquire_token(OddProvider())
