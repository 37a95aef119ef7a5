"""CLIエントリーポイント"""
import argparse
import json
import re
import sys
from pathlib import Path
from typing import Any, Optional

import yaml
from tqdm import tqdm

from .features.container import ServiceContainer
from .features.delivery.domain.models import DeliveryZone
from .features.geocoding.domain.models import (
    AddressInput,
    address_from_coordinates,
    address_from_text,
)
from .infrastructure.config.settings import Settings
from .shared.exceptions.errors import DeliveryDistanceError, InvalidParametersError
from .shared.logging.config import get_logger, setup_logging

logger = get_logger(__name__)

# "緯度,経度" 形式（例: -23.5505,-46.6333）
COORDINATES_PATTERN = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")


def parse_address(value: str) -> AddressInput:
    """
    コマンドライン引数を住所入力に変換

    "緯度,経度" 形式なら座標、それ以外は住所テキストとして扱う。
    """
    match = COORDINATES_PATTERN.match(value)
    if match:
        return address_from_coordinates(float(match.group(1)), float(match.group(2)))
    return address_from_text(value)


def load_zones(path: str) -> list[DeliveryZone]:
    """
    YAMLファイルから配送ゾーンを読み込む

    トップレベルはゾーンのリスト、または "zones" キーを持つマッピング。

    Raises:
        InvalidParametersError: ファイルの形式が不正な場合
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if isinstance(data, dict):
        data = data.get("zones")

    if not isinstance(data, list):
        raise InvalidParametersError(f"Zones file must contain a list of zones: {path}")

    return [DeliveryZone.from_dict(item) for item in data]


def load_addresses(path: str) -> list[str]:
    """住所ファイル（1行1件、空行と#で始まる行は無視）を読み込む"""
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]


def _print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def run_distance(container: ServiceContainer, args: argparse.Namespace) -> int:
    result = container.orchestrator.resolve_distance_detailed(
        parse_address(args.origin), parse_address(args.destination)
    )
    _print_json(
        {
            "origin": args.origin,
            "destination": args.destination,
            "distance_km": result.distance_km,
            "source": result.source.value,
        }
    )
    return 0


def run_quote(container: ServiceContainer, args: argparse.Namespace) -> int:
    zones = load_zones(args.zones)
    quote = container.fee_service.quote(
        parse_address(args.origin), parse_address(args.destination), zones
    )
    _print_json(quote.to_dict())
    return 0


def run_warm_cache(container: ServiceContainer, args: argparse.Namespace) -> int:
    addresses = load_addresses(args.addresses_file)
    logger.info(f"Warming coordinates cache with {len(addresses)} addresses")

    failed = 0
    for text in tqdm(addresses, desc="Geocoding", unit="addr"):
        try:
            container.orchestrator.get_coordinates(parse_address(text))
        except DeliveryDistanceError as e:
            failed += 1
            logger.warning(f"Failed to geocode '{text}': {e}")

    logger.info(f"Cache warm-up finished: {len(addresses) - failed} ok, {failed} failed")
    _print_json(container.coordinates_cache.get_cache_stats())
    return 0 if failed == 0 else 1


def run_cache_stats(container: ServiceContainer, args: argparse.Namespace) -> int:
    _print_json(
        {
            "coordinates": container.coordinates_cache.get_cache_stats(),
            "distance": container.distance_cache.get_cache_stats(),
        }
    )
    return 0


def run_cache_clear(container: ServiceContainer, args: argparse.Namespace) -> int:
    if args.cache in ("coordinates", "all"):
        container.coordinates_cache.clear()
    if args.cache in ("distance", "all"):
        container.distance_cache.clear()
    return 0


def _add_route_arguments(parser: argparse.ArgumentParser) -> None:
    # 負の緯度経度はオプションと誤認されるため "--origin=-23.55,-46.63" の形で渡す
    parser.add_argument(
        "--origin",
        required=True,
        help="出発地（住所、CEP、または --origin=緯度,経度）",
    )
    parser.add_argument(
        "--destination",
        required=True,
        help="目的地（住所、CEP、または --destination=緯度,経度）",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="レストラン配送の距離計算・配送料見積もりツール"
    )

    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="環境変数ファイルのパス（デフォルト: .env）",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="ログレベル",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    distance_parser = subparsers.add_parser("distance", help="2地点間の距離を計算")
    _add_route_arguments(distance_parser)
    distance_parser.set_defaults(handler=run_distance)

    quote_parser = subparsers.add_parser("quote", help="配送料を見積もる")
    _add_route_arguments(quote_parser)
    quote_parser.add_argument("--zones", required=True, help="配送ゾーンのYAMLファイル")
    quote_parser.set_defaults(handler=run_quote)

    warm_parser = subparsers.add_parser("warm-cache", help="住所一覧で座標キャッシュを温める")
    warm_parser.add_argument(
        "--addresses-file", required=True, help="住所ファイル（1行1件）"
    )
    warm_parser.set_defaults(handler=run_warm_cache)

    stats_parser = subparsers.add_parser("cache-stats", help="キャッシュ統計を表示")
    stats_parser.set_defaults(handler=run_cache_stats)

    clear_parser = subparsers.add_parser("cache-clear", help="キャッシュを空にする")
    clear_parser.add_argument(
        "cache",
        nargs="?",
        default="all",
        choices=["coordinates", "distance", "all"],
        help="対象のキャッシュ（デフォルト: all）",
    )
    clear_parser.set_defaults(handler=run_cache_clear)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    メインエントリーポイント

    Returns:
        int: 終了コード（0: 成功, 1: 失敗）
    """
    args = build_parser().parse_args(argv)

    container = None
    try:
        # 設定を読み込み
        settings = Settings(_env_file=args.env_file)

        # ログレベルを上書き
        if args.log_level:
            settings.log_level = args.log_level

        setup_logging(
            level=settings.log_level,
            enable_cloud_logging=settings.gcp_logging_enabled,
            project_id=settings.gcp_project_id,
        )

        logger.info(f"Running command: {args.command}")
        logger.info(f"Environment: {settings.environment}")

        container = ServiceContainer(settings)
        return args.handler(container, args)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130  # SIGINT
    except DeliveryDistanceError as e:
        logger.error(f"Command failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Application failed: {e}", exc_info=True)
        return 1
    finally:
        if container is not None:
            container.close()


if __name__ == "__main__":
    sys.exit(main())
