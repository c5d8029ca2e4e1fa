"""
Configuración para el puente WSDL
"""
import os
from typing import Optional

from dotenv import load_dotenv

from .models import SecurityCredentials

load_dotenv()


SECURITY_MODE_STANDARD = "standard"
SECURITY_MODE_VENDOR = "vendor"

PHASE_EGRESS = "egress"
PHASE_WSSE = "wsse"


def _env_bool(name: str, default: str = "false") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: str) -> float:
    raw = (os.getenv(name) or "").strip() or default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} debe ser numérico (segundos). Recibido: {raw!r}")


class BridgeConfig:
    """Configuración del cliente WSDL (servicio, timeouts y seguridad)"""

    SECURITY_MODES = (SECURITY_MODE_STANDARD, SECURITY_MODE_VENDOR)
    SECURITY_PHASES = (PHASE_EGRESS, PHASE_WSSE)

    DEFAULT_SERVICE_URL = "http://localhost:8080/Service.asmx"
    DEFAULT_SERVICE_NAMESPACE = "http://tempuri.org/"
    DEFAULT_WSDL_PATH = "wsdl/service.wsdl"

    def __init__(
        self,
        wsdl_url: Optional[str] = None,
        wsdl_path: Optional[str] = None,
        service_url: Optional[str] = None,
        service_namespace: Optional[str] = None,
        connect_timeout: float = 30.0,
        receive_timeout: float = 60.0,
        resolve_timeout: float = 120.0,
        security_enabled: bool = False,
        security_mode: str = SECURITY_MODE_VENDOR,
        security_phase: str = PHASE_EGRESS,
        username: str = "",
        password: str = "",
        client_id: Optional[str] = "DEFAULT",
        alternate_auth: bool = False,
        change_password: bool = False,
        debug_soap: bool = False,
    ):
        """
        Inicializa la configuración

        Args:
            wsdl_url: URL explícita del WSDL (prioridad máxima)
            wsdl_path: Path local del WSDL (segunda opción)
            service_url: URL del servicio SOAP; se prueba <service_url>?wsdl como último recurso
            security_mode: 'vendor' (header PFS) o 'standard' (UsernameToken)
            security_phase: 'egress' (plugin zeep) o 'wsse' (hook wsse de zeep)
        """
        if security_mode not in self.SECURITY_MODES:
            raise ValueError(
                f"Modo de seguridad inválido: {security_mode}. Debe ser uno de {self.SECURITY_MODES}"
            )
        if security_phase not in self.SECURITY_PHASES:
            raise ValueError(
                f"Fase de seguridad inválida: {security_phase}. Debe ser una de {self.SECURITY_PHASES}"
            )

        self.wsdl_url = (wsdl_url or "").strip() or None
        self.wsdl_path = wsdl_path or self.DEFAULT_WSDL_PATH
        self.service_url = service_url or self.DEFAULT_SERVICE_URL
        self.service_namespace = service_namespace or self.DEFAULT_SERVICE_NAMESPACE

        # Timeouts (segundos)
        self.connect_timeout = connect_timeout
        self.receive_timeout = receive_timeout
        self.resolve_timeout = resolve_timeout

        # Seguridad
        self.security_enabled = security_enabled
        self.security_mode = security_mode
        self.security_phase = security_phase
        self.username = username
        self.password = password
        self.client_id = client_id
        self.alternate_auth = alternate_auth
        self.change_password = change_password

        # Guarda request/response en un HistoryPlugin de zeep
        self.debug_soap = debug_soap

    @property
    def credentials(self) -> SecurityCredentials:
        return SecurityCredentials(
            username=self.username,
            password=self.password,
            client_id=self.client_id,
            alternate_auth=self.alternate_auth,
            change_password=self.change_password,
        )

    @property
    def timeout(self) -> tuple:
        """Tupla (connect, read) como la espera requests/zeep."""
        return (self.connect_timeout, self.receive_timeout)

    def service_wsdl_url(self) -> str:
        return f"{self.service_url}?wsdl"


def get_bridge_config() -> BridgeConfig:
    """
    Obtiene la configuración desde variables de entorno

    Returns:
        Configuración del puente WSDL
    """
    return BridgeConfig(
        wsdl_url=os.getenv("WSDL_BRIDGE_WSDL_URL"),
        wsdl_path=os.getenv("WSDL_BRIDGE_WSDL_PATH", BridgeConfig.DEFAULT_WSDL_PATH),
        service_url=os.getenv("WSDL_BRIDGE_SERVICE_URL", BridgeConfig.DEFAULT_SERVICE_URL),
        service_namespace=os.getenv(
            "WSDL_BRIDGE_SERVICE_NAMESPACE", BridgeConfig.DEFAULT_SERVICE_NAMESPACE
        ),
        connect_timeout=_env_float("WSDL_BRIDGE_CONNECT_TIMEOUT", "30"),
        receive_timeout=_env_float("WSDL_BRIDGE_RECEIVE_TIMEOUT", "60"),
        resolve_timeout=_env_float("WSDL_BRIDGE_RESOLVE_TIMEOUT", "120"),
        security_enabled=_env_bool("WSDL_BRIDGE_SECURITY_ENABLED"),
        security_mode=(os.getenv("WSDL_BRIDGE_SECURITY_MODE") or SECURITY_MODE_VENDOR).strip().lower(),
        security_phase=(os.getenv("WSDL_BRIDGE_SECURITY_PHASE") or PHASE_EGRESS).strip().lower(),
        username=os.getenv("WSDL_BRIDGE_USERNAME", ""),
        password=os.getenv("WSDL_BRIDGE_PASSWORD", ""),
        client_id=os.getenv("WSDL_BRIDGE_CLIENT_ID") or "DEFAULT",
        alternate_auth=_env_bool("WSDL_BRIDGE_ALTERNATE_AUTH"),
        change_password=_env_bool("WSDL_BRIDGE_CHANGE_PASSWORD"),
        debug_soap=_env_bool("WSDL_BRIDGE_DEBUG_SOAP"),
    )
