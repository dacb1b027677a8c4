# -*- coding: utf-8 -*-
"""
Preparación de payloads: valores por defecto, saneamiento y validación

El payload lo construye cada entidad (build_payload) y aquí no se confía
en él: se completa, se normaliza y se valida antes de cualquier llamada
remota.
"""

import copy
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Dict, Optional

from .exceptions import ValidationError

REQUIRED_FIELDS = ('offerId', 'title', 'description', 'link', 'imageLink', 'price', 'availability')

VALID_AVAILABILITIES = ('in stock', 'out of stock', 'preorder')
VALID_CONDITIONS = ('new', 'used', 'refurbished')

# Campos de texto libre que se limpian de markup
TEXT_FIELDS = ('title', 'description', 'brand')

MAX_ADDITIONAL_IMAGES = 9

REQUIRED_FIELD_DEFAULTS = {
    'condition': 'new',
    'availability': 'in stock',
    'price': {'value': '0.00', 'currency': 'USD'},
}

_TAG_RE = re.compile(r'<[^>]*>')


def strip_tags(value: str) -> str:
    """Elimina etiquetas HTML/XML de un texto"""
    return _TAG_RE.sub('', value)


def _to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convierte números y cadenas numéricas a Decimal

    Returns:
        Decimal finito, o None si el valor no es numérico
    """
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def format_price(number: Decimal) -> str:
    """Formatea un Decimal con exactamente dos decimales, sea cual sea su magnitud"""
    with localcontext() as ctx:
        # quantize necesita precisión para todos los dígitos enteros más los dos decimales
        ctx.prec = max(28, number.adjusted() + 3)
        return f"{number.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):f}"


def apply_defaults(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Completa los campos requeridos que faltan; los valores enviados ganan

    Args:
        payload: Payload construido por la entidad

    Returns:
        dict: Nuevo payload con los valores por defecto debajo
    """
    data = copy.deepcopy(REQUIRED_FIELD_DEFAULTS)
    data.update(copy.deepcopy(payload))
    return data


def sanitize(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normaliza el payload

    - Quita markup y espacios de los textos libres
    - Formatea price.value con exactamente dos decimales
    - Convierte offerId a string
    - Conserva como máximo 9 imágenes adicionales

    Los valores no numéricos del precio se dejan tal cual para que
    validate() los rechace.
    """
    data = copy.deepcopy(payload)

    for field_name in TEXT_FIELDS:
        if isinstance(data.get(field_name), str):
            data[field_name] = strip_tags(data[field_name]).strip()

    price = data.get('price')
    if isinstance(price, dict) and price.get('value') is not None:
        number = _to_decimal(price['value'])
        if number is not None:
            price['value'] = format_price(number)

    if data.get('offerId') is not None:
        data['offerId'] = str(data['offerId'])

    images = data.get('additionalImageLinks')
    if isinstance(images, (list, tuple)):
        data['additionalImageLinks'] = list(images)[:MAX_ADDITIONAL_IMAGES]

    return data


def validate(payload: Dict[str, Any]) -> bool:
    """
    Valida un payload antes de enviarlo

    Args:
        payload: Payload ya completado y saneado

    Returns:
        True si el payload es válido

    Raises:
        ValidationError: Con el nombre del campo que falla
    """
    for field_name in REQUIRED_FIELDS:
        if payload.get(field_name) is None:
            raise ValidationError(f"Missing required field: {field_name}", field=field_name)

    price = payload['price']
    if not isinstance(price, dict) or price.get('value') is None or price.get('currency') is None:
        raise ValidationError("Price must have 'value' and 'currency' fields", field='price')

    number = _to_decimal(price['value'])
    if number is None or number < 0:
        raise ValidationError("Price value must be a non-negative number", field='price')

    if payload['availability'] not in VALID_AVAILABILITIES:
        raise ValidationError(
            f"Invalid availability value. Must be one of: {', '.join(VALID_AVAILABILITIES)}",
            field='availability',
        )

    condition = payload.get('condition')
    if condition is not None and condition not in VALID_CONDITIONS:
        raise ValidationError(
            f"Invalid condition value. Must be one of: {', '.join(VALID_CONDITIONS)}",
            field='condition',
        )

    return True


def prepare(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Pipeline completo: defaults -> saneamiento -> validación"""
    if not isinstance(payload, dict):
        raise ValidationError(f"Payload must be a mapping, got {type(payload).__name__}")
    data = sanitize(apply_defaults(payload))
    validate(data)
    return data
