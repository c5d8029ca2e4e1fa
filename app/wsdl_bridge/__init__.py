"""
Puente WSDL: resolución de WSDL complejos, catálogo de operaciones,
binding de parámetros, headers de seguridad e invocación dinámica vía zeep.
"""
from .config import BridgeConfig, get_bridge_config
from .fetcher import DocumentFetcher, ResolutionContext, is_url_accessible
from .resolver import ResolutionReport, ResolvedWsdl, WsdlResolver
from .catalog import OperationCatalogBuilder, TransportCatalogSource, WsdlCatalogSource
from .binder import ArgumentBinder, bind_arguments, convert_parameter_type
from .security import SecurityHeaderComposer, SecurityHeaderPlugin, install_security
from .adapter import (
    DEFAULT_METHODS,
    AdapterSnapshot,
    AdapterState,
    WsdlServiceAdapter,
    normalize_result,
)
from .models import (
    BindingResult,
    OperationCatalog,
    OperationDescriptor,
    ParameterDescriptor,
    SecurityCredentials,
)
from .exceptions import (
    WsdlBridgeException,
    FetchError,
    MergeSkipped,
    NotInitializedError,
    ServiceInvocationError,
    MissingRequiredParameter,
)

__all__ = [
    'BridgeConfig',
    'get_bridge_config',
    'DocumentFetcher',
    'ResolutionContext',
    'is_url_accessible',
    'WsdlResolver',
    'ResolvedWsdl',
    'ResolutionReport',
    'OperationCatalogBuilder',
    'WsdlCatalogSource',
    'TransportCatalogSource',
    'ArgumentBinder',
    'bind_arguments',
    'convert_parameter_type',
    'SecurityHeaderComposer',
    'SecurityHeaderPlugin',
    'install_security',
    'WsdlServiceAdapter',
    'AdapterSnapshot',
    'AdapterState',
    'DEFAULT_METHODS',
    'normalize_result',
    'BindingResult',
    'OperationCatalog',
    'OperationDescriptor',
    'ParameterDescriptor',
    'SecurityCredentials',
    'WsdlBridgeException',
    'FetchError',
    'MergeSkipped',
    'NotInitializedError',
    'ServiceInvocationError',
    'MissingRequiredParameter',
]
