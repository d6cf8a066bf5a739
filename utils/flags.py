from typing import Any
import math

TRUTHY_STRINGS = frozenset({"1", "true", "yes", "y", "on"})


def parse_bool(value: Any) -> bool:
    """
    リクエストや環境変数のフラグ値を bool に変換する

    | value                                   | result |
    |-----------------------------------------|--------|
    | True                                    | True   |
    | 1 / 1.0                                 | True   |
    | "1" "true" "yes" "y" "on" (大小文字・前後空白無視) | True   |
    | False / 0 / None                        | False  |
    | 上記以外の文字列・数値・型                  | False  |
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return False


def clamp_count(value: Any, minimum: int = 1, maximum: int = 8) -> int:
    """数値に変換できない値・有限でない値・minimum未満は minimum、maximum超過は maximum"""
    value = _integer_text(value)
    if isinstance(value, bool):
        return minimum
    if isinstance(value, int):
        return min(value, maximum) if value >= minimum else minimum
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return minimum
    if not math.isfinite(number) or number < minimum:
        return minimum
    return min(int(number), maximum)


def positive_int(value: Any, default: int = 1) -> int:
    """1 以上の整数に変換する。数値でない値・有限でない値・1 未満は default"""
    value = _integer_text(value)
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value >= 1 else default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(number) or number < 1:
        return default
    return int(number)


def _integer_text(value: Any) -> Any:
    """整数表記の文字列は int にする (float 経由だと桁数の大きい値が inf になる)"""
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    return value
