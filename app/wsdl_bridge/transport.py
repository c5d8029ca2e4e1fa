"""
Creación del cliente zeep (requests.Session + timeouts).
"""
import logging
from typing import Any, List, Optional

from requests import Session
from requests.adapters import HTTPAdapter
from zeep import Client, Settings
from zeep.transports import Transport

from .config import BridgeConfig

logger = logging.getLogger(__name__)


def create_transport(config: BridgeConfig, session: Optional[Session] = None) -> Transport:
    """Transporte zeep con timeouts (connect, read) de la configuración."""
    session = session or Session()
    session.headers.setdefault("User-Agent", "wsdl-bridge")
    session.mount("http://", HTTPAdapter())
    session.mount("https://", HTTPAdapter())

    # timeout puede ser int o tuple (connect, read) según requests/zeep
    return Transport(  # type: ignore[arg-type]
        session=session,
        timeout=config.timeout,  # type: ignore[arg-type]
        operation_timeout=config.receive_timeout,
    )


def create_client(
    wsdl_source: str,
    config: BridgeConfig,
    plugins: Optional[List[Any]] = None,
    session: Optional[Session] = None,
) -> Client:
    """
    Crea el cliente dinámico zeep para el WSDL indicado.

    Args:
        wsdl_source: Path del WSDL consolidado o URL original
        config: Configuración (timeouts)
        plugins: Plugins zeep adicionales (HistoryPlugin, etc.)
    """
    logger.info(f"Creando cliente SOAP para: {wsdl_source}")
    client = Client(
        wsdl=wsdl_source,
        transport=create_transport(config, session),
        settings=Settings(strict=False, xml_huge_tree=True),
        plugins=list(plugins or []),
    )
    logger.info("Cliente dinámico creado correctamente")
    return client
