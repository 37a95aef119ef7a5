"""CLIエントリーポイントのテスト"""

import json

import pytest

from delivery_distance import entrypoint
from delivery_distance.features.cache.geo_cache import create_distance_cache
from delivery_distance.features.cache.persistence import FileCachePersistence, NullPersistence
from delivery_distance.features.container import ServiceContainer
from delivery_distance.features.geocoding.domain.models import (
    CoordinateAddress,
    TextAddress,
    address_from_text,
)
from delivery_distance.shared.exceptions.errors import AddressNotFoundError, InvalidParametersError

from .fakes import AVENIDA_PAULISTA, SAO_PAULO_SE, FakeDistanceProvider, FakeGeocoder

ZONES_YAML = """
zones:
  - id: near
    minDistance: 0
    maxDistance: 3
    fee: "5.00"
    estimatedTime: 20-30 min
  - id: middle
    minDistance: 3
    maxDistance: 6
    fee: "8.50"
    estimatedTime: 30-45 min
"""


@pytest.fixture
def containers(monkeypatch: pytest.MonkeyPatch) -> list[ServiceContainer]:
    """mainが作るコンテナをフェイクのコラボレーターで差し替える"""
    created: list[ServiceContainer] = []
    geocoder = FakeGeocoder(
        {
            "Praça da Sé": SAO_PAULO_SE,
            "Avenida Paulista, 1000": AVENIDA_PAULISTA,
            "Rua Inexistente": AddressNotFoundError("Rua Inexistente"),
        }
    )

    def factory(settings):
        container = ServiceContainer(
            settings,
            geocoder=geocoder,
            distance_provider=FakeDistanceProvider(2.7),
            persistence=NullPersistence(),
        )
        created.append(container)
        return container

    monkeypatch.setattr(entrypoint, "ServiceContainer", factory)
    monkeypatch.setattr(entrypoint, "setup_logging", lambda **kwargs: None)
    return created


@pytest.mark.parametrize(
    "value,expected",
    [
        ("-23.5505,-46.6333", CoordinateAddress(SAO_PAULO_SE)),
        (" -23.5505 , -46.6333 ", CoordinateAddress(SAO_PAULO_SE)),
        ("Rua Augusta, 100", TextAddress("Rua Augusta, 100")),
        ("13053-143", TextAddress("13053-143")),
    ],
)
def test_parse_address(value: str, expected: object) -> None:
    assert entrypoint.parse_address(value) == expected


def test_parse_address_rejects_out_of_range_coordinates() -> None:
    with pytest.raises(InvalidParametersError):
        entrypoint.parse_address("95.0,10.0")


def test_load_zones(tmp_path) -> None:
    path = tmp_path / "zones.yaml"
    path.write_text(ZONES_YAML, encoding="utf-8")

    zones = entrypoint.load_zones(str(path))

    assert [zone.id for zone in zones] == ["near", "middle"]


def test_load_zones_rejects_non_list(tmp_path) -> None:
    path = tmp_path / "zones.yaml"
    path.write_text("zones: 3\n", encoding="utf-8")

    with pytest.raises(InvalidParametersError):
        entrypoint.load_zones(str(path))


def test_load_addresses_skips_blank_and_comment_lines(tmp_path) -> None:
    path = tmp_path / "addresses.txt"
    path.write_text("# restaurants\nPraça da Sé\n\n  Avenida Paulista, 1000  \n", encoding="utf-8")

    assert entrypoint.load_addresses(str(path)) == ["Praça da Sé", "Avenida Paulista, 1000"]


def test_distance_command(containers, capsys) -> None:
    exit_code = entrypoint.main(
        [
            "--env-file",
            "/nonexistent.env",
            "distance",
            "--origin", "Praça da Sé",
            "--destination", "Avenida Paulista, 1000",
        ]
    )

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output["source"] == "local"
    assert 2.0 < output["distance_km"] < 3.0


def test_quote_command(containers, capsys, tmp_path) -> None:
    path = tmp_path / "zones.yaml"
    path.write_text(ZONES_YAML, encoding="utf-8")

    exit_code = entrypoint.main(
        [
            "quote",
            "--origin", "Praça da Sé",
            "--destination=-23.5614,-46.6559",
            "--zones", str(path),
        ]
    )

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output["deliverable"] is True
    assert output["zone_id"] == "near"
    assert output["fee"] == "5.00"


def test_unknown_address_exit_code(containers) -> None:
    assert entrypoint.main(
        ["distance", "--origin", "Rua Inexistente", "--destination", "Praça da Sé"]
    ) == 1


def test_warm_cache_command(containers, capsys, tmp_path) -> None:
    path = tmp_path / "addresses.txt"
    path.write_text("Praça da Sé\nAvenida Paulista, 1000\n", encoding="utf-8")

    exit_code = entrypoint.main(["warm-cache", "--addresses-file", str(path)])

    assert exit_code == 0
    assert containers[0].coordinates_cache.size() == 2


def test_warm_cache_reports_failures(containers, tmp_path) -> None:
    path = tmp_path / "addresses.txt"
    path.write_text("Praça da Sé\nRua Inexistente\n", encoding="utf-8")

    assert entrypoint.main(["warm-cache", "--addresses-file", str(path)]) == 1
    assert containers[0].coordinates_cache.size() == 1


def test_cache_stats_command(containers, capsys) -> None:
    assert entrypoint.main(["cache-stats"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert set(output) == {"coordinates", "distance"}
    assert output["distance"]["cache_size"] == 0


def test_cache_clear_command(containers) -> None:
    assert entrypoint.main(["cache-clear", "distance"]) == 0


def test_distance_command_with_negative_coordinates(containers, capsys) -> None:
    """ブラジルの座標（負の緯度経度）を受け付ける"""
    exit_code = entrypoint.main(
        [
            "distance",
            "--origin=-23.5505,-46.6333",
            "--destination=-23.5614,-46.6559",
        ]
    )

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output["origin"] == "-23.5505,-46.6333"
    assert 2.0 < output["distance_km"] < 3.0
    assert containers[0].orchestrator.geocoder.calls == []


def test_parser_reads_negative_coordinates_as_values() -> None:
    args = entrypoint.build_parser().parse_args(
        ["quote", "--origin=-23.55,-46.63", "--destination", "Praça da Sé", "--zones", "z.yaml"]
    )

    assert args.origin == "-23.55,-46.63"
    assert args.destination == "Praça da Sé"


@pytest.mark.parametrize("command", [["cache-stats"], ["cache-clear", "distance"]])
def test_cache_admin_commands_without_api_key(
    command: list[str], monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    """API Keyがなくてもキャッシュの統計・クリアは実行できる"""
    for name in ("GOOGLE_MAPS_API_KEY", "ENVIRONMENT", "GCP_PROJECT_ID", "CACHE_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(entrypoint, "setup_logging", lambda **kwargs: None)

    persistence = FileCachePersistence(str(tmp_path))
    cache = create_distance_cache(persistence=persistence)
    cache.set(
        (address_from_text("Praça da Sé"), address_from_text("Avenida Paulista, 1000")), 2.7
    )
    cache.close()

    env_file = tmp_path / ".env"
    env_file.write_text(f"CACHE_BACKEND=file\nCACHE_DIRECTORY={tmp_path}\n", encoding="utf-8")

    assert entrypoint.main(["--env-file", str(env_file), *command]) == 0

    expected_size = 0 if command[0] == "cache-clear" else 1
    assert create_distance_cache(persistence=persistence).size() == expected_size
