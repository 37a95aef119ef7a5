"""Cloud Run用HTTPサーバー（FastAPI）"""
from dataclasses import asdict
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .features.container import ServiceContainer
from .features.delivery.domain.models import DeliveryZone
from .features.distance.domain.algorithms import compare_algorithms
from .features.geocoding.domain.models import (
    AddressInput,
    address_from_coordinates,
    address_from_text,
)
from .infrastructure.config.settings import Settings
from .shared.exceptions.errors import (
    AddressNotFoundError,
    ConfigurationError,
    InvalidParametersError,
    ProviderError,
)
from .shared.logging.config import get_logger, setup_logging
from .shared.utils.datetime_utils import now_utc

# 設定を読み込み
settings = Settings()

# ロギングを設定
setup_logging(
    level=settings.log_level,
    enable_cloud_logging=settings.gcp_logging_enabled,
    project_id=settings.gcp_project_id,
)
logger = get_logger(__name__)

# FastAPIアプリケーションを作成
app = FastAPI(
    title="配送距離サービス",
    description="レストラン配送の距離計算と配送料見積もりを行うサービス",
    version="1.0.0",
)

# キャッシュを共有するため、プロセスに1つだけ作成する
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """サービスコンテナを取得（初回呼び出し時に作成）"""
    global _container
    if _container is None:
        _container = ServiceContainer(settings)
    return _container


class AddressPayload(BaseModel):
    """住所テキスト、または緯度経度"""

    address: Optional[str] = Field(default=None, description="住所またはCEP")
    latitude: Optional[float] = Field(default=None, description="緯度")
    longitude: Optional[float] = Field(default=None, description="経度")

    def to_address(self) -> AddressInput:
        if self.latitude is not None and self.longitude is not None:
            return address_from_coordinates(self.latitude, self.longitude)
        if self.address:
            return address_from_text(self.address)
        raise InvalidParametersError("Either address or latitude/longitude is required")


class DistanceRequest(BaseModel):
    origin: AddressPayload
    destination: AddressPayload


class QuoteRequest(BaseModel):
    origin: AddressPayload
    destination: AddressPayload
    zones: list[dict[str, Any]] = Field(description="配送ゾーン（優先順）")


class ConfigUpdateRequest(BaseModel):
    """距離計算ポリシーの部分更新（指定したフィールドのみ変更）"""

    use_local_algorithms: Optional[bool] = None
    max_distance_for_local_only_km: Optional[float] = None
    use_google_for_confirmation: Optional[bool] = None
    max_difference_tolerance_km: Optional[float] = None


@app.on_event("startup")
async def startup_event() -> None:
    """起動時の処理"""
    logger.info("Application starting up")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Project: {settings.project_name}")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """シャットダウン時の処理（保留中のキャッシュ永続化を待つ）"""
    logger.info("Application shutting down")
    if _container is not None:
        _container.close()


@app.get("/")
async def root() -> dict[str, Any]:
    """ルートエンドポイント"""
    return {
        "service": "配送距離サービス",
        "version": "1.0.0",
        "status": "running",
        "environment": settings.environment,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """ヘルスチェックエンドポイント"""
    return {"status": "healthy", "timestamp": now_utc().isoformat()}


@app.post("/distance")
def distance(
    request: DistanceRequest, container: ServiceContainer = Depends(get_container)
) -> dict[str, Any]:
    """2地点間の距離を解決"""
    result = container.orchestrator.resolve_distance_detailed(
        request.origin.to_address(), request.destination.to_address()
    )
    return {"distance_km": result.distance_km, "source": result.source.value}


@app.post("/quote")
def quote(
    request: QuoteRequest, container: ServiceContainer = Depends(get_container)
) -> dict[str, Any]:
    """配送料を見積もる（範囲外の場合もdeliverable=falseで200を返す）"""
    zones = [DeliveryZone.from_dict(zone) for zone in request.zones]
    delivery_quote = container.fee_service.quote(
        request.origin.to_address(), request.destination.to_address(), zones
    )
    return delivery_quote.to_dict()


@app.get("/cep/{cep}")
def lookup_cep(
    cep: str,
    allowed_states: Optional[list[str]] = Query(default=None),
    container: ServiceContainer = Depends(get_container),
) -> dict[str, Any]:
    """
    CEPから住所を取得

    allowed_statesを指定した場合は、許可された州内かどうかも返す。
    """
    address = container.cep_client.fetch_address(cep)
    response = asdict(address)
    if allowed_states:
        response["allowed"] = container.cep_client.is_address_allowed(address, allowed_states)
    return response


@app.get("/debug/cache")
def cache_stats(container: ServiceContainer = Depends(get_container)) -> dict[str, Any]:
    """キャッシュ統計"""
    return {
        "coordinates": container.coordinates_cache.get_cache_stats(),
        "distance": container.distance_cache.get_cache_stats(),
    }


@app.delete("/debug/cache/{name}")
def clear_cache(name: str, container: ServiceContainer = Depends(get_container)) -> dict[str, Any]:
    """キャッシュを空にする（coordinates / distance / all）"""
    caches = {
        "coordinates": [container.coordinates_cache],
        "distance": [container.distance_cache],
        "all": [container.coordinates_cache, container.distance_cache],
    }
    if name not in caches:
        raise HTTPException(status_code=404, detail=f"Unknown cache: {name}")

    for cache in caches[name]:
        cache.clear()

    return {"cleared": [cache.name for cache in caches[name]]}


@app.get("/debug/config")
def get_config(container: ServiceContainer = Depends(get_container)) -> dict[str, Any]:
    """現在の距離計算ポリシー"""
    return container.orchestrator.config.to_dict()


@app.put("/debug/config")
def update_config(
    request: ConfigUpdateRequest, container: ServiceContainer = Depends(get_container)
) -> dict[str, Any]:
    """距離計算ポリシーを部分更新"""
    changes = request.model_dump(exclude_none=True)
    return container.orchestrator.update_config(**changes).to_dict()


@app.post("/debug/algorithms")
def algorithms(
    request: DistanceRequest, container: ServiceContainer = Depends(get_container)
) -> dict[str, Any]:
    """全アルゴリズムの結果を比較（外部の距離APIは呼ばない）"""
    origin = container.orchestrator.get_coordinates(request.origin.to_address())
    destination = container.orchestrator.get_coordinates(request.destination.to_address())
    return {
        "origin": origin.to_dict(),
        "destination": destination.to_dict(),
        "results": compare_algorithms(origin, destination),
    }


@app.exception_handler(InvalidParametersError)
@app.exception_handler(ConfigurationError)
async def bad_request_handler(request: Request, exc: Exception) -> JSONResponse:
    """入力・設定エラー"""
    logger.info(f"Bad request on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"message": "Bad request", "detail": str(exc)})


@app.exception_handler(AddressNotFoundError)
async def not_found_handler(request: Request, exc: AddressNotFoundError) -> JSONResponse:
    """住所が見つからない"""
    logger.info(f"Address not found on {request.url.path}: {exc.address}")
    return JSONResponse(
        status_code=404, content={"message": "Address not found", "detail": str(exc)}
    )


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    """外部プロバイダーのエラー"""
    logger.error(f"Provider error on {request.url.path}: {exc} (status={exc.status})")
    return JSONResponse(
        status_code=502,
        content={"message": "Upstream provider error", "detail": str(exc), "status": exc.status},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """グローバル例外ハンドラー"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "detail": str(exc)},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
