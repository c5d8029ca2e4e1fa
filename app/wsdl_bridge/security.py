"""
Headers de seguridad para los mensajes SOAP salientes.

Dos variantes excluyentes:
- standard: wsse:UsernameToken (PasswordText + Nonce + wsu:Created)
- vendor: estructura plana PFS dentro de wsse:Security; el servidor la lee
  posicionalmente por nombre de elemento, el orden de los campos es fijo.

Se inyectan en la fase configurada:
- egress: Plugin de zeep, sobre el envelope ya renderizado
- wsse: hook wsse de zeep (apply/verify), antes de los plugins
"""
import base64
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from lxml import etree
from zeep import Plugin
from zeep.utils import detect_soap_env

from .config import PHASE_WSSE, SECURITY_MODE_STANDARD, SECURITY_MODE_VENDOR
from .models import SecurityCredentials

logger = logging.getLogger(__name__)

WSSE_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd"
WSU_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-utility-1.0.xsd"
PFS_NS = "http://pfs.com"

PASSWORD_TEXT = (
    "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-username-token-profile-1.0#PasswordText"
)
BASE64_BINARY = (
    "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-soap-message-security-1.0#Base64Binary"
)

SECURITY_QNAME = etree.QName(WSSE_NS, "Security")

DEFAULT_CLIENT_ID = "DEFAULT"

# Orden exacto esperado por el autenticador PFS
VENDOR_FIELDS = (
    "PfsClientID",
    "PfsUserName",
    "PfsUserPassword",
    "PfsUserNewPassword",
    "PfsKeyData",
    "PfsWindowsAuthentication",
    "PfsChangePassword",
    "PfsToken",
)

POLICY_MARKERS = ("policy", "Policy", "SecureConversation")


def _lower_bool(value: bool) -> str:
    return "true" if value else "false"


def format_instant(moment: datetime) -> str:
    """ISO-8601 en UTC con milisegundos, ej: 2024-05-01T12:00:00.123Z"""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def build_standard_security_header(
    credentials: SecurityCredentials, now: Optional[datetime] = None
) -> etree._Element:
    """
    Construye wsse:Security con un UsernameToken en texto plano.

    El Nonce es el timestamp en milisegundos codificado en base64.
    """
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)

    security = etree.Element(SECURITY_QNAME, nsmap={"wsse": WSSE_NS, "wsu": WSU_NS})
    token = etree.SubElement(security, f"{{{WSSE_NS}}}UsernameToken")
    token.set(f"{{{WSU_NS}}}Id", f"UsernameToken-{millis}")

    username = etree.SubElement(token, f"{{{WSSE_NS}}}Username")
    username.text = credentials.username

    password = etree.SubElement(token, f"{{{WSSE_NS}}}Password")
    password.set("Type", PASSWORD_TEXT)
    password.text = credentials.password

    nonce = etree.SubElement(token, f"{{{WSSE_NS}}}Nonce")
    nonce.set("EncodingType", BASE64_BINARY)
    nonce.text = base64.b64encode(str(millis).encode("ascii")).decode("ascii")

    created = etree.SubElement(token, f"{{{WSU_NS}}}Created")
    created.text = format_instant(now)
    return security


def build_vendor_security_header(credentials: SecurityCredentials) -> etree._Element:
    """Construye wsse:Security con los campos PFS en orden fijo."""
    security = etree.Element(
        SECURITY_QNAME, nsmap={"wsse": WSSE_NS, "wsu": WSU_NS, "pfs": PFS_NS}
    )
    # Sin prefijo: el autenticador no acepta el atributo calificado
    security.set("mustUnderstand", "1")

    values = {
        "PfsClientID": credentials.client_id or DEFAULT_CLIENT_ID,
        "PfsUserName": credentials.username,
        "PfsUserPassword": credentials.password,
        "PfsUserNewPassword": credentials.password if credentials.change_password else "",
        "PfsKeyData": "",
        "PfsWindowsAuthentication": _lower_bool(credentials.alternate_auth),
        "PfsChangePassword": _lower_bool(credentials.change_password),
        "PfsToken": "",
    }
    for name in VENDOR_FIELDS:
        field_elem = etree.SubElement(security, f"{{{PFS_NS}}}{name}")
        field_elem.text = values[name] or ""
    return security


class SecurityHeaderComposer:
    """Genera un header nuevo por mensaje según el modo configurado."""

    def __init__(self, credentials: SecurityCredentials, mode: str = SECURITY_MODE_VENDOR):
        if mode not in (SECURITY_MODE_STANDARD, SECURITY_MODE_VENDOR):
            raise ValueError(f"Modo de seguridad inválido: {mode}")
        self.credentials = credentials
        self.mode = mode

    @property
    def is_vendor(self) -> bool:
        return self.mode == SECURITY_MODE_VENDOR

    def build(self) -> etree._Element:
        if self.is_vendor:
            return build_vendor_security_header(self.credentials)
        return build_standard_security_header(self.credentials)


def attach_security_header(envelope: etree._Element, security: etree._Element) -> etree._Element:
    """
    Agrega `security` al soap:Header, reemplazando cualquier wsse:Security previo.

    Returns:
        El mismo envelope (modificado)
    """
    soap_env = detect_soap_env(envelope)
    header = envelope.find(f"{{{soap_env}}}Header")
    if header is None:
        header = etree.Element(f"{{{soap_env}}}Header")
        envelope.insert(0, header)

    for existing in header.findall(SECURITY_QNAME.text):
        header.remove(existing)

    if security.get("mustUnderstand") is None:
        security.set(f"{{{soap_env}}}mustUnderstand", "1")
    header.append(security)
    return envelope


class SecurityHeaderPlugin(Plugin):
    """Inyecta el header justo antes del envío (fase egress)."""

    def __init__(self, composer: SecurityHeaderComposer):
        self.composer = composer

    def egress(self, envelope, http_headers, operation, binding_options):
        attach_security_header(envelope, self.composer.build())
        logger.debug(f"Header de seguridad ({self.composer.mode}) agregado al mensaje SOAP")
        return envelope, http_headers


class SecurityHeaderWsse:
    """Misma inyección a través del hook wsse de zeep."""

    def __init__(self, composer: SecurityHeaderComposer):
        self.composer = composer

    def apply(self, envelope, headers):
        attach_security_header(envelope, self.composer.build())
        logger.debug(f"Header de seguridad ({self.composer.mode}) agregado vía wsse")
        return envelope, headers

    def verify(self, envelope):
        return envelope


def disable_policy_processing(client: Any) -> None:
    """Quita wsse y plugins de policy/secure-conversation del cliente zeep."""
    client.wsse = None
    before = len(client.plugins)
    client.plugins = [
        plugin
        for plugin in client.plugins
        if not any(marker in type(plugin).__name__ for marker in POLICY_MARKERS)
    ]
    removed = before - len(client.plugins)
    logger.info(
        f"Procesamiento WS-Policy/SecureConversation deshabilitado (plugins removidos: {removed})"
    )


def install_security(client: Any, composer: SecurityHeaderComposer, phase: str) -> None:
    """
    Registra el composer en el cliente zeep en la fase indicada.

    Reinstalar reemplaza cualquier instancia previa, nunca duplica.
    """
    if composer.is_vendor:
        disable_policy_processing(client)

    client.plugins = [p for p in client.plugins if not isinstance(p, SecurityHeaderPlugin)]
    if isinstance(client.wsse, SecurityHeaderWsse):
        client.wsse = None

    if phase == PHASE_WSSE:
        client.wsse = SecurityHeaderWsse(composer)
    else:
        client.plugins.append(SecurityHeaderPlugin(composer))
    logger.info(f"Seguridad configurada: modo={composer.mode}, fase={phase}")
