"""
Pyrecord 类型系统

负责驱动返回值与模型属性之间的类型转换：
- coerce：将数据库读出的值转换为属性声明的类型（数值拓宽/收窄、字符串化、时间类型互转）
- to_database：将 Python 值转换为驱动可绑定的参数值
"""

from datetime import datetime, date, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional, Type

from ..common.exceptions import MappingError


def _from_epoch_millis(value: Any) -> datetime:
    """毫秒级时间戳转换为本地时间"""
    return datetime.fromtimestamp(float(value) / 1000)


# ========== 读取方向：数据库值 -> 属性值 ==========

def _coerce_int(value: Any) -> int:
    """转换为 int（支持 float / Decimal 收窄）"""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, (bool, float, Decimal)):
        return int(value)
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8')
    return int(str(value).strip())


def _coerce_float(value: Any) -> float:
    """转换为 float"""
    if isinstance(value, float):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8')
    return float(value)


def _coerce_decimal(value: Any) -> Decimal:
    """转换为 Decimal"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8')
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"invalid decimal literal: {value!r}") from None


def _coerce_str(value: Any) -> str:
    """转换为 str"""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode('utf-8')
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _coerce_bool(value: Any) -> bool:
    """转换为 bool"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8')
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return bool(value)


def _coerce_bytes(value: Any) -> bytes:
    """转换为 bytes"""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode('utf-8')
    return bytes(value)


def _coerce_datetime(value: Any) -> datetime:
    """转换为 datetime（支持 date、毫秒时间戳、ISO 字符串）"""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return _from_epoch_millis(value)
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8')
    return datetime.fromisoformat(str(value).strip())


def _coerce_date(value: Any) -> date:
    """转换为 date（支持 datetime、毫秒时间戳、ISO 字符串）"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return _from_epoch_millis(value).date()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8')
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        return datetime.fromisoformat(text).date()


def _coerce_time(value: Any) -> time:
    """转换为 time（MySQL 的 TIME 列以 timedelta 返回）"""
    if isinstance(value, time):
        return value
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, timedelta):
        return (datetime.min + value).time()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8')
    return time.fromisoformat(str(value).strip())


def _coerce_timedelta(value: Any) -> timedelta:
    """转换为 timedelta（数值视为秒数）"""
    if isinstance(value, timedelta):
        return value
    return timedelta(seconds=float(value))


# 读取方向转换函数注册表
_COERCERS: Dict[type, Callable[[Any], Any]] = {
    int: _coerce_int,
    float: _coerce_float,
    Decimal: _coerce_decimal,
    str: _coerce_str,
    bool: _coerce_bool,
    bytes: _coerce_bytes,
    datetime: _coerce_datetime,
    date: _coerce_date,
    time: _coerce_time,
    timedelta: _coerce_timedelta,
}


# ========== 写入方向：属性值 -> 驱动参数 ==========

def _serialize_datetime(value: datetime) -> str:
    return value.isoformat(sep=' ')


def _serialize_iso(value: Any) -> str:
    return value.isoformat()


def _serialize_decimal(value: Decimal) -> str:
    return str(value)


def _serialize_timedelta(value: timedelta) -> float:
    return value.total_seconds()


_SERIALIZERS: Dict[type, Callable[[Any], Any]] = {
    datetime: _serialize_datetime,
    date: _serialize_iso,
    time: _serialize_iso,
    Decimal: _serialize_decimal,
    timedelta: _serialize_timedelta,
}


class TypeRegistry:
    """类型注册表"""

    _coercers: Dict[type, Callable[[Any], Any]] = dict(_COERCERS)
    _serializers: Dict[type, Callable[[Any], Any]] = dict(_SERIALIZERS)

    @classmethod
    def coerce(cls, value: Any, col_type: Type[Any], column_name: Optional[str] = None) -> Any:
        """
        将数据库值转换为属性声明的类型

        Args:
            value: 数据库返回的值
            col_type: 属性声明的 Python 类型
            column_name: 列名（用于错误信息）

        Returns:
            转换后的值；value 为 None 时返回 None

        Raises:
            MappingError: 无法转换
        """
        if value is None:
            return None

        coercer = cls._coercers.get(col_type)
        try:
            if coercer is not None:
                return coercer(value)
            if isinstance(value, col_type):
                return value
            return col_type(value)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise MappingError(
                f"Cannot convert {value!r} to {getattr(col_type, '__name__', col_type)}"
                + (f" for column '{column_name}'" if column_name else ''),
                value=value,
                target_type=getattr(col_type, '__name__', str(col_type)),
                column_name=column_name
            ) from e

    @classmethod
    def to_database(cls, value: Any) -> Any:
        """
        将 Python 值转换为驱动可直接绑定的参数

        Args:
            value: Python 值

        Returns:
            转换后的参数值（int、float、str、bytes 与 None 原样返回）
        """
        if value is None:
            return None
        serializer = cls._serializers.get(type(value))
        if serializer is not None:
            return serializer(value)
        return value

    @classmethod
    def register(
        cls,
        py_type: type,
        coercer: Callable[[Any], Any],
        serializer: Optional[Callable[[Any], Any]] = None
    ) -> None:
        """注册自定义类型的转换函数"""
        cls._coercers[py_type] = coercer
        if serializer is not None:
            cls._serializers[py_type] = serializer
