"""
Binding de parámetros: de un dict con claves laxas a la lista posicional y
tipada que espera la operación.

Coincidencia de nombres (en orden):
1. clave exacta
2. sin distinguir mayúsculas
3. sin prefijo "ns:" en ambos lados, sin distinguir mayúsculas
4. sin coincidencia: None (se registra como parámetro requerido faltante)
"""
import logging
from decimal import Decimal
from numbers import Number
from typing import Any, Dict, Mapping, Optional, Tuple

from .exceptions import MissingRequiredParameter
from .models import BindingResult, OperationDescriptor, ParameterDescriptor

logger = logging.getLogger(__name__)

_MISSING = object()

INT32_RANGE = (-(2 ** 31), 2 ** 31 - 1)
INT64_RANGE = (-(2 ** 63), 2 ** 63 - 1)


class CoercionError(ValueError):
    pass


def _strip_prefix(name: str) -> str:
    return name.rsplit(":", 1)[-1] if ":" in name else name


def find_parameter_value(params: Mapping[str, Any], name: str) -> Any:
    """Busca el valor de `name` en `params`; retorna _MISSING si no hay coincidencia."""
    if name in params:
        return params[name]

    lowered = name.lower()
    for key, value in params.items():
        if str(key).lower() == lowered:
            return value

    simple = _strip_prefix(name).lower()
    for key, value in params.items():
        if _strip_prefix(str(key)).lower() == simple:
            return value

    return _MISSING


def _to_integer(value: Any, bounds: Tuple[int, int]) -> int:
    if isinstance(value, bool):
        raise CoercionError("bool no es numérico")
    if isinstance(value, Number):
        text = repr(value)
        result = int(value)
    else:
        text = str(value).strip()
        result = int(text)
    if not bounds[0] <= result <= bounds[1]:
        raise CoercionError(f"{text} fuera de rango")
    return result


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise CoercionError("bool no es numérico")
    if isinstance(value, (Number, Decimal)):
        return float(value)
    return float(str(value).strip())


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise CoercionError(f"valor booleano inválido: {value!r}")


def _to_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


CONVERTERS = {
    "string": _to_string,
    "int": lambda v: _to_integer(v, INT32_RANGE),
    "integer": lambda v: _to_integer(v, INT32_RANGE),
    "long": lambda v: _to_integer(v, INT64_RANGE),
    "double": _to_float,
    "float": _to_float,
    "boolean": _to_bool,
}


def convert_parameter_type(value: Any, type_localname: Optional[str]) -> Any:
    """
    Convierte `value` al tipo primitivo declarado.

    Tipos complejos o desconocidos se devuelven sin cambios.

    Raises:
        CoercionError / ValueError: si la conversión falla
    """
    if value is None or not type_localname:
        return value
    converter = CONVERTERS.get(type_localname.lower())
    if converter is None:
        return value
    return converter(value)


class ArgumentBinder:
    """Ordena y convierte los parámetros según el descriptor de la operación."""

    def bind(
        self,
        descriptor: Optional[OperationDescriptor],
        params: Optional[Mapping[str, Any]],
    ) -> BindingResult:
        result = BindingResult()
        if not params:
            return result

        if descriptor is None or not descriptor.inputs:
            name = descriptor.name if descriptor else "?"
            logger.debug(f"Sin definición de parámetros para {name}, se usa el orden del dict")
            result.args = list(params.values())
            return result

        for param in sorted(descriptor.inputs, key=lambda p: p.order):
            value = find_parameter_value(params, param.name)
            if value is _MISSING or value is None:
                if param.required:
                    missing = MissingRequiredParameter(param.name, descriptor.name)
                    logger.warning(missing.message)
                    result.missing.append(missing)
                result.args.append(None)
                continue
            result.args.append(self._convert(param, value, result))

        logger.debug(f"Argumentos ordenados para {descriptor.name}: {len(result.args)}")
        return result

    def _convert(self, param: ParameterDescriptor, value: Any, result: BindingResult) -> Any:
        try:
            return convert_parameter_type(value, param.type_localname)
        except (ValueError, TypeError, OverflowError) as e:
            logger.warning(
                f"Conversión de tipo fallida, parámetro: {param.name}, valor: {value!r}, "
                f"tipo destino: {param.type_name}, error: {e}"
            )
            result.coercion_failures.append(param.name)
            return value


def bind_arguments(
    descriptor: Optional[OperationDescriptor], params: Optional[Dict[str, Any]]
) -> list:
    """Atajo: solo la lista de argumentos ordenados."""
    return ArgumentBinder().bind(descriptor, params).args
