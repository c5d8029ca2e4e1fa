"""
Modelos de datos del puente WSDL
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Tuple

from lxml import etree


@dataclass(frozen=True)
class ParameterDescriptor:
    """Parte de un mensaje WSDL (parámetro de entrada o salida)"""
    name: str
    type_name: Optional[etree.QName]
    required: bool = True  # el contrato no tiene partes opcionales
    order: int = 0

    @property
    def type_localname(self) -> Optional[str]:
        if self.type_name is None:
            return None
        return self.type_name.localname


@dataclass(frozen=True)
class OperationDescriptor:
    """Operación de un portType con sus partes ordenadas"""
    name: str
    inputs: Tuple[ParameterDescriptor, ...] = ()
    outputs: Tuple[ParameterDescriptor, ...] = ()


@dataclass(frozen=True)
class SecurityCredentials:
    """Credenciales para el header de seguridad (solo lectura)"""
    username: str
    password: str
    client_id: Optional[str] = None
    alternate_auth: bool = False
    change_password: bool = False


@dataclass
class OperationCatalog:
    """Catálogo de operaciones: descriptores por nombre + orden de publicación"""
    descriptors: Dict[str, OperationDescriptor] = field(default_factory=dict)
    names: List[str] = field(default_factory=list)
    source: str = "wsdl"

    def lookup(self, name: str) -> Optional[OperationDescriptor]:
        """Busca por nombre exacto y luego sin distinguir mayúsculas."""
        descriptor = self.descriptors.get(name)
        if descriptor is not None:
            return descriptor
        lowered = name.lower()
        for key, value in self.descriptors.items():
            if key.lower() == lowered:
                return value
        return None


@dataclass
class BindingResult:
    """Argumentos ordenados más las incidencias del binding"""
    args: List[Any] = field(default_factory=list)
    missing: List[Any] = field(default_factory=list)  # MissingRequiredParameter
    coercion_failures: List[str] = field(default_factory=list)
