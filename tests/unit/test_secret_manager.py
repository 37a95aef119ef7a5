"""Secret Managerクライアントのテスト"""

from types import SimpleNamespace

import pytest

from delivery_distance.infrastructure.gcp.secret_manager import SecretManagerClient
from delivery_distance.shared.exceptions.errors import ConfigurationError


class FakeSecretService:
    def __init__(self, value: bytes = b"", error: Exception = None):
        self.value = value
        self.error = error
        self.requests: list[dict] = []

    def access_secret_version(self, request: dict):
        self.requests.append(request)
        if self.error:
            raise self.error
        return SimpleNamespace(payload=SimpleNamespace(data=self.value))


def test_get_secret_builds_resource_name_and_strips_value() -> None:
    service = FakeSecretService(b"AIzaSecretValue\n")
    client = SecretManagerClient("delivery-prod", client=service)

    assert client.get_secret("google-maps-api-key") == "AIzaSecretValue"
    assert service.requests == [
        {"name": "projects/delivery-prod/secrets/google-maps-api-key/versions/latest"}
    ]


def test_get_secret_failure_raises_configuration_error() -> None:
    client = SecretManagerClient(
        "delivery-prod", client=FakeSecretService(error=RuntimeError("permission denied"))
    )

    with pytest.raises(ConfigurationError):
        client.get_secret("google-maps-api-key")


def test_project_id_is_required() -> None:
    with pytest.raises(ConfigurationError):
        SecretManagerClient("", client=FakeSecretService())
