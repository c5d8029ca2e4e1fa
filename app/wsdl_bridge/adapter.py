"""
Adaptador del servicio WSDL: punto único para listar, invocar y verificar
operaciones del servicio SOAP remoto.

Ciclo de vida:
    UNINITIALIZED -> RESOLVING -> READY | DEGRADED_DEFAULTS
`reinitialize()` vuelve siempre a resolver desde cero.

El estado vivo (cliente zeep + catálogo) es un AdapterSnapshot inmutable que
se reemplaza con una sola asignación; una invocación en curso termina contra
el snapshot que leyó al empezar.
"""
import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from zeep.exceptions import Fault
from zeep.helpers import serialize_object
from zeep.plugins import HistoryPlugin

from .binder import ArgumentBinder
from .catalog import OperationCatalogBuilder, TransportCatalogSource, WsdlCatalogSource
from .config import BridgeConfig, get_bridge_config
from .exceptions import FetchError, NotInitializedError, ServiceInvocationError
from .fetcher import DocumentFetcher, is_url_accessible
from .models import OperationCatalog, OperationDescriptor
from .resolver import ResolutionReport, WsdlResolver
from .security import SecurityHeaderComposer, install_security
from .transport import create_client

logger = logging.getLogger(__name__)

RESULT_SUCCESS = "success"
RESULT_DATA = "data"

DEFAULT_METHODS = ("GetVersion", "Echo", "Ping")

HEALTH_MARKERS = ("ping", "version")


class AdapterState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RESOLVING = "resolving"
    READY = "ready"
    DEGRADED_DEFAULTS = "degraded_defaults"


@dataclass(frozen=True)
class AdapterSnapshot:
    state: AdapterState
    client: Any = None
    catalog: OperationCatalog = field(default_factory=OperationCatalog)
    wsdl_source: Optional[str] = None
    report: Optional[ResolutionReport] = None

    @property
    def method_names(self) -> List[str]:
        return list(self.catalog.names)


def _degraded_snapshot(reason: str) -> AdapterSnapshot:
    logger.warning(f"Cliente WSDL en modo degradado ({reason}), métodos por defecto: {list(DEFAULT_METHODS)}")
    return AdapterSnapshot(
        state=AdapterState.DEGRADED_DEFAULTS,
        catalog=OperationCatalog(names=list(DEFAULT_METHODS), source="defaults"),
    )


def _return_values(result: Any) -> list:
    if result is None:
        return []
    if isinstance(result, tuple):
        return list(result)
    return [result]


def _split_outputs(result: Any, descriptor: OperationDescriptor) -> list:
    """Separa la respuesta de zeep por parte de salida, en el orden declarado."""
    serialized = serialize_object(result)
    names = [part.name for part in sorted(descriptor.outputs, key=lambda p: p.order)]
    if isinstance(serialized, Mapping):
        return [serialized.get(name) for name in names]
    return [serialize_object(v) for v in _return_values(result)]


def normalize_result(result: Any, descriptor: Optional[OperationDescriptor] = None) -> Dict[str, Any]:
    """
    Normaliza la respuesta de zeep:
    - sin valores: {"success": True, "data": None}
    - un valor: {"success": True, "data": valor}
    - varios: {"success": True, "result0": ..., "result1": ...}

    Con varias partes de salida zeep devuelve un único CompoundValue; el
    descriptor indica cómo separarlo. Una sola parte compleja sigue yendo a "data".
    """
    if result is None:
        return {RESULT_SUCCESS: True, RESULT_DATA: None}
    if descriptor is not None and len(descriptor.outputs) > 1:
        values = _split_outputs(result, descriptor)
    else:
        values = [serialize_object(v) for v in _return_values(result)]
    if not values:
        return {RESULT_SUCCESS: True, RESULT_DATA: None}
    if len(values) == 1:
        return {RESULT_SUCCESS: True, RESULT_DATA: values[0]}
    normalized: Dict[str, Any] = {RESULT_SUCCESS: True}
    for index, value in enumerate(values):
        normalized[f"result{index}"] = value
    return normalized


class WsdlServiceAdapter:
    """Adaptador entre llamadas por nombre + dict y el cliente SOAP dinámico."""

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        resolver: Optional[WsdlResolver] = None,
        client_factory: Optional[Callable[..., Any]] = None,
        catalog_builder: Optional[OperationCatalogBuilder] = None,
        binder: Optional[ArgumentBinder] = None,
        url_probe: Callable[[str, float], bool] = is_url_accessible,
    ):
        self.config = config or get_bridge_config()
        self.resolver = resolver or WsdlResolver(DocumentFetcher(timeout=self.config.timeout))
        self.client_factory = client_factory or create_client
        self.catalog_builder = catalog_builder or OperationCatalogBuilder(DocumentFetcher(timeout=self.config.timeout))
        self.binder = binder or ArgumentBinder()
        self.url_probe = url_probe

        self._snapshot = AdapterSnapshot(state=AdapterState.UNINITIALIZED)
        self._resolving = False
        self._init_lock = threading.Lock()
        self.history: Optional[HistoryPlugin] = None

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> AdapterSnapshot:
        return self._snapshot

    @property
    def state(self) -> AdapterState:
        if self._resolving:
            return AdapterState.RESOLVING
        return self._snapshot.state

    def available_methods(self) -> List[str]:
        return self._snapshot.method_names

    # ------------------------------------------------------------------
    # Inicialización
    # ------------------------------------------------------------------
    def initialize(self) -> AdapterSnapshot:
        """Resuelve el WSDL, crea el cliente y publica el catálogo. Nunca lanza."""
        with self._init_lock:
            self._resolving = True
            try:
                logger.info("Inicializando cliente WSDL...")
                snapshot = self._build_snapshot()
                self._snapshot = snapshot
            finally:
                self._resolving = False
        if snapshot.state == AdapterState.READY:
            logger.info(
                f"Inicialización del cliente WSDL completada, métodos disponibles: {len(snapshot.method_names)}"
            )
        return snapshot

    def reinitialize(self) -> AdapterSnapshot:
        logger.info("Reinicializando cliente WSDL...")
        return self.initialize()

    def _build_snapshot(self) -> AdapterSnapshot:
        try:
            wsdl_source, report = self._determine_wsdl_source()
            if wsdl_source is None:
                return _degraded_snapshot("no se pudo obtener el documento WSDL")
            logger.info(f"Usando fuente WSDL: {wsdl_source}")

            client = self._create_client(wsdl_source)
            catalog = self._load_catalog(wsdl_source, client)
            logger.info(f"Métodos extraídos ({catalog.source}): {catalog.names}")
            return AdapterSnapshot(
                state=AdapterState.READY,
                client=client,
                catalog=catalog,
                wsdl_source=wsdl_source,
                report=report,
            )
        except Exception as e:
            logger.error(f"Fallo al inicializar el cliente WSDL: {e}", exc_info=True)
            return _degraded_snapshot(str(e))

    def _determine_wsdl_source(self) -> Tuple[Optional[str], Optional[ResolutionReport]]:
        """
        Prioridad:
        1. URL de WSDL configurada explícitamente
        2. Archivo WSDL local
        3. <service_url>?wsdl si es accesible
        """
        cfg = self.config
        if cfg.wsdl_url:
            logger.info(f"Usando URL de WSDL configurada: {cfg.wsdl_url}")
            return self._consolidate(cfg.wsdl_url)

        wsdl_file = Path(cfg.wsdl_path)
        if wsdl_file.exists():
            logger.info(f"Usando archivo WSDL local: {wsdl_file.resolve()}")
            return self._consolidate(str(wsdl_file.resolve()))

        wsdl_url = cfg.service_wsdl_url()
        logger.warning(f"Archivo WSDL local inexistente, se intenta desde la URL del servicio: {wsdl_url}")
        if self.url_probe(wsdl_url, cfg.connect_timeout):
            return self._consolidate(wsdl_url)

        logger.warning(f"URL de WSDL no accesible: {wsdl_url}")
        return None, None

    def _consolidate(self, location: str) -> Tuple[str, Optional[ResolutionReport]]:
        """Resuelve imports/includes con un plazo global; si falla usa la ubicación original."""
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="wsdl-resolve")
        try:
            future = executor.submit(self.resolver.resolve, location)
            resolved = future.result(timeout=self.config.resolve_timeout)
            return resolved.path, resolved.report
        except FetchError as e:
            logger.error(f"Fallo al resolver WSDL complejo: {e.message}")
        except concurrent.futures.TimeoutError:
            logger.error(
                f"Resolución de WSDL excedió {self.config.resolve_timeout}s, se usa la ubicación original"
            )
        finally:
            executor.shutdown(wait=False)
        return location, None

    def _create_client(self, wsdl_source: str) -> Any:
        plugins = []
        if self.config.debug_soap:
            self.history = HistoryPlugin()
            plugins.append(self.history)

        client = self.client_factory(wsdl_source, self.config, plugins)

        if self.config.security_enabled:
            composer = SecurityHeaderComposer(self.config.credentials, self.config.security_mode)
            install_security(client, composer, self.config.security_phase)
        return client

    def _load_catalog(self, wsdl_source: str, client: Any) -> OperationCatalog:
        try:
            catalog = WsdlCatalogSource(wsdl_source, self.catalog_builder).load()
            if catalog.names:
                return catalog
            logger.warning("La definición WSDL no declara operaciones, se enumeran desde el transporte")
        except Exception as e:
            logger.warning(f"No se pudo analizar la definición WSDL, se enumeran desde el transporte: {e}")
        return TransportCatalogSource(client).load()

    # ------------------------------------------------------------------
    # Invocación
    # ------------------------------------------------------------------
    def invoke(self, name: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Invoca una operación del servicio.

        Args:
            name: Nombre de la operación
            params: Parámetros con claves laxas (mayúsculas/prefijos)

        Returns:
            Resultado normalizado (ver normalize_result)

        Raises:
            NotInitializedError: Si no hay cliente utilizable
            ServiceInvocationError: Si falla el transporte o el servicio devuelve un Fault
        """
        snapshot = self._snapshot
        if snapshot.client is None:
            raise NotInitializedError()

        logger.info(f"Invocando método WSDL: {name}, parámetros: {dict(params or {})}")
        descriptor = snapshot.catalog.lookup(name)
        operation_name = descriptor.name if descriptor is not None else name
        binding = self.binder.bind(descriptor, params)

        try:
            operation = snapshot.client.service[operation_name]
            result = operation(*binding.args)
        except Fault as e:
            logger.error(f"SOAP Fault al invocar {operation_name}: {e.message}")
            raise ServiceInvocationError(operation_name, e.message) from e
        except Exception as e:
            logger.error(f"Fallo al invocar método WSDL: {operation_name}, error: {e}", exc_info=True)
            raise ServiceInvocationError(operation_name, str(e)) from e

        logger.info(f"Método WSDL invocado correctamente: {operation_name}")
        return normalize_result(result, descriptor)

    # ------------------------------------------------------------------
    # Salud / información
    # ------------------------------------------------------------------
    def _health_operation(self, names: List[str]) -> Optional[str]:
        for marker in HEALTH_MARKERS:
            for name in names:
                if marker in name.lower():
                    return name
        return None

    def is_healthy(self) -> bool:
        """Invoca una operación liviana (ping/version); cualquier error => no saludable."""
        snapshot = self._snapshot
        if snapshot.client is None:
            return False
        try:
            operation = self._health_operation(snapshot.method_names)
            if operation:
                self.invoke(operation, None)
            return True
        except Exception as e:
            logger.warning(f"Chequeo de salud del servicio fallido: {e}")
            return False

    def service_info(self) -> Dict[str, Any]:
        snapshot = self._snapshot
        return {
            "serviceUrl": self.config.service_url,
            "namespace": self.config.service_namespace,
            "wsdlSource": snapshot.wsdl_source,
            "state": self.state.value,
            "catalogSource": snapshot.catalog.source,
            "clientInitialized": snapshot.client is not None,
            "availableMethodsCount": len(snapshot.method_names),
            "resolution": snapshot.report.to_dict() if snapshot.report else None,
            "timestamp": int(time.time() * 1000),
        }
