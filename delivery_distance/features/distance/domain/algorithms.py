"""
測地距離アルゴリズム

2点間の距離を計算する純粋関数群。I/Oも共有状態も持たない。

- approximate_distance: 正距円筒近似（最も高速、精度は最も低い）
- haversine_distance: 球面上の大円距離
- vincenty_distance: WGS-84楕円体上の反復解
- calculate_optimal_distance: 概算距離に応じて上記から選択

戻り値はすべて小数点以下2桁に丸めたkm。
下流のキャッシュと比較は2桁精度を前提とする。
"""

import math

from .models import AlgorithmName
from ...geocoding.domain.models import Coordinates
from ....shared.exceptions.errors import DistanceCalculationUnavailableError
from ....shared.logging.config import get_logger

logger = get_logger(__name__)

# 地球の平均半径（km）
EARTH_RADIUS_KM = 6371.0

# WGS-84楕円体
WGS84_EQUATORIAL_RADIUS_KM = 6378.137
WGS84_POLAR_RADIUS_KM = 6356.752314245
WGS84_FLATTENING = 1 / 298.257223563

VINCENTY_CONVERGENCE_THRESHOLD = 1e-12
VINCENTY_MAX_ITERATIONS = 100

# 選択のしきい値（概算距離, km）
SHORT_RANGE_LIMIT_KM = 10.0
MEDIUM_RANGE_LIMIT_KM = 100.0


def _round_km(distance: float) -> float:
    return math.floor(distance * 100 + 0.5) / 100


def approximate_distance(point1: Coordinates, point2: Coordinates) -> float:
    """
    正距円筒近似による距離

    経度差を平均緯度のcosで縮め、緯度差とピタゴラスで合成する。
    距離や緯度の絶対値が大きくなるほど誤差が増える。
    """
    lat1 = math.radians(point1.latitude)
    lat2 = math.radians(point2.latitude)
    lon1 = math.radians(point1.longitude)
    lon2 = math.radians(point2.longitude)

    x = (lon2 - lon1) * math.cos((lat1 + lat2) / 2)
    y = lat2 - lat1

    return _round_km(math.sqrt(x * x + y * y) * EARTH_RADIUS_KM)


def haversine_distance(point1: Coordinates, point2: Coordinates) -> float:
    """ハバーサイン公式による大円距離（楕円体の扁平は無視）"""
    d_lat = math.radians(point2.latitude - point1.latitude)
    d_lon = math.radians(point2.longitude - point1.longitude)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(point1.latitude))
        * math.cos(math.radians(point2.latitude))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return _round_km(EARTH_RADIUS_KM * c)


def vincenty_distance(point1: Coordinates, point2: Coordinates) -> float:
    """
    Vincentyの逆解法によるWGS-84楕円体上の距離

    λの差が1e-12未満になるか、100回反復するまで固定点反復する。

    Raises:
        DistanceCalculationUnavailableError: 反復上限までに収束しない場合
            （ほぼ対蹠点のペアで起こる）
    """
    a = WGS84_EQUATORIAL_RADIUS_KM
    b = WGS84_POLAR_RADIUS_KM
    f = WGS84_FLATTENING

    L = math.radians(point2.longitude - point1.longitude)
    U1 = math.atan((1 - f) * math.tan(math.radians(point1.latitude)))
    U2 = math.atan((1 - f) * math.tan(math.radians(point2.latitude)))
    sin_U1, cos_U1 = math.sin(U1), math.cos(U1)
    sin_U2, cos_U2 = math.sin(U2), math.cos(U2)

    lam = L
    for _ in range(VINCENTY_MAX_ITERATIONS):
        sin_lam = math.sin(lam)
        cos_lam = math.cos(lam)
        sin_sigma = math.sqrt(
            (cos_U2 * sin_lam) ** 2
            + (cos_U1 * sin_U2 - sin_U1 * cos_U2 * cos_lam) ** 2
        )

        # 同一地点
        if sin_sigma == 0:
            return 0.0

        cos_sigma = sin_U1 * sin_U2 + cos_U1 * cos_U2 * cos_lam
        sigma = math.atan2(sin_sigma, cos_sigma)
        sin_alpha = cos_U1 * cos_U2 * sin_lam / sin_sigma
        cos_sq_alpha = 1 - sin_alpha ** 2

        # 赤道上の線ではcos_sq_alpha == 0
        if cos_sq_alpha != 0:
            cos_2sigma_m = cos_sigma - 2 * sin_U1 * sin_U2 / cos_sq_alpha
        else:
            cos_2sigma_m = 0.0

        C = f / 16 * cos_sq_alpha * (4 + f * (4 - 3 * cos_sq_alpha))
        lam_prev = lam
        lam = L + (1 - C) * f * sin_alpha * (
            sigma + C * sin_sigma * (cos_2sigma_m + C * cos_sigma * (-1 + 2 * cos_2sigma_m ** 2))
        )

        if abs(lam - lam_prev) < VINCENTY_CONVERGENCE_THRESHOLD:
            break
    else:
        raise DistanceCalculationUnavailableError(
            f"Vincenty did not converge after {VINCENTY_MAX_ITERATIONS} iterations "
            f"for {point1} -> {point2}"
        )

    u_sq = cos_sq_alpha * (a * a - b * b) / (b * b)
    A = 1 + u_sq / 16384 * (4096 + u_sq * (-768 + u_sq * (320 - 175 * u_sq)))
    B = u_sq / 1024 * (256 + u_sq * (-128 + u_sq * (74 - 47 * u_sq)))
    delta_sigma = B * sin_sigma * (
        cos_2sigma_m
        + B / 4 * (
            cos_sigma * (-1 + 2 * cos_2sigma_m ** 2)
            - B / 6 * cos_2sigma_m * (-3 + 4 * sin_sigma ** 2) * (-3 + 4 * cos_2sigma_m ** 2)
        )
    )

    return _round_km(b * A * (sigma - delta_sigma))


def select_algorithm(approximate_km: float) -> AlgorithmName:
    """概算距離から使用するアルゴリズムを選ぶ"""
    if approximate_km < SHORT_RANGE_LIMIT_KM:
        return AlgorithmName.APPROXIMATE
    if approximate_km < MEDIUM_RANGE_LIMIT_KM:
        return AlgorithmName.HAVERSINE
    return AlgorithmName.VINCENTY


def calculate_optimal_distance(point1: Coordinates, point2: Coordinates) -> float:
    """
    最適なアルゴリズムで距離を計算

    まず概算距離を求め、
    - 10km未満: 概算値をそのまま返す
    - 100km未満: ハバーサインで再計算
    - それ以上: Vincentyで再計算（収束しない場合はハバーサイン）
    """
    approx = approximate_distance(point1, point2)
    algorithm = select_algorithm(approx)

    if algorithm is AlgorithmName.APPROXIMATE:
        return approx
    if algorithm is AlgorithmName.HAVERSINE:
        return haversine_distance(point1, point2)

    try:
        return vincenty_distance(point1, point2)
    except DistanceCalculationUnavailableError as e:
        logger.warning(f"{e}; falling back to haversine")
        return haversine_distance(point1, point2)


def is_point_within_radius(center: Coordinates, point: Coordinates, radius_km: float) -> bool:
    """ハバーサイン距離が半径以内（境界を含む）かどうか"""
    return haversine_distance(center, point) <= radius_km


def compare_algorithms(point1: Coordinates, point2: Coordinates) -> dict[str, object]:
    """
    全アルゴリズムの結果を並べて返す（デバッグ・管理画面用）

    Vincentyが収束しない場合、その値はNoneになる。
    """
    approx = approximate_distance(point1, point2)
    try:
        vincenty = vincenty_distance(point1, point2)
    except DistanceCalculationUnavailableError:
        vincenty = None

    return {
        AlgorithmName.APPROXIMATE.value: approx,
        AlgorithmName.HAVERSINE.value: haversine_distance(point1, point2),
        AlgorithmName.VINCENTY.value: vincenty,
        "selected_algorithm": select_algorithm(approx).value,
        "optimal": calculate_optimal_distance(point1, point2),
    }
