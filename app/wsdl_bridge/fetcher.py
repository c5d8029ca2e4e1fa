"""
Descarga y parseo de documentos XML (WSDL/XSD) desde URL o path local.

El cache y el conjunto de ubicaciones visitadas viven en un ResolutionContext
creado por cada resolución; nunca se comparten entre llamadas concurrentes.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union
from urllib.parse import urljoin, urlparse
from urllib.request import url2pathname

import httpx
import requests
from lxml import etree

from .exceptions import FetchError

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http", "https")

Timeout = Union[float, Tuple[float, float]]


@dataclass
class ResolutionContext:
    """Estado de una única resolución: visitados, cache y resultados por referencia."""
    visited: Set[str] = field(default_factory=set)
    cache: Dict[str, etree._ElementTree] = field(default_factory=dict)
    fetched: List[str] = field(default_factory=list)  # cargas reales, en orden
    outcomes: list = field(default_factory=list)  # ReferenceOutcome
    consolidated: Set[str] = field(default_factory=set)
    failed: Set[str] = field(default_factory=set)


def is_remote(location: str) -> bool:
    return urlparse(location).scheme in REMOTE_SCHEMES


def _has_scheme(location: str) -> bool:
    scheme = urlparse(location).scheme
    # "C:\..." se parsea con scheme "c"
    return scheme in REMOTE_SCHEMES or scheme == "file"


def resolve_location(base: str, reference: str) -> str:
    """
    Resuelve una referencia (location/schemaLocation) contra la ubicación del documento.

    Args:
        base: Ubicación del documento que contiene la referencia (URL o path)
        reference: Valor del atributo, absoluto o relativo

    Returns:
        Ubicación absoluta (URL o path normalizado)
    """
    reference = reference.strip()
    if _has_scheme(reference):
        return reference
    if _has_scheme(base):
        return urljoin(base, reference)
    if os.path.isabs(reference):
        return os.path.normpath(reference)
    return os.path.normpath(os.path.join(os.path.dirname(base), reference))


def normalize_root_location(location: str) -> str:
    """Paths locales relativos se vuelven absolutos; URLs se dejan tal cual."""
    location = location.strip()
    if _has_scheme(location):
        return location
    return os.path.abspath(location)


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(
        remove_blank_text=False,
        load_dtd=False,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
    )


class DocumentFetcher:
    """Obtiene y parsea documentos XML, cacheando por ubicación exacta."""

    ACCEPT = "text/xml, application/xml"
    USER_AGENT = "wsdl-bridge"

    def __init__(self, session: Optional[requests.Session] = None, timeout: Timeout = (30, 60)):
        self.session = session or requests.Session()
        self.timeout = timeout

    def _load_bytes(self, location: str) -> bytes:
        parsed = urlparse(location)
        if parsed.scheme in REMOTE_SCHEMES:
            resp = self.session.get(
                location,
                timeout=self.timeout,
                headers={"Accept": self.ACCEPT, "User-Agent": self.USER_AGENT},
            )
            resp.raise_for_status()
            content = resp.content or b""
            if not content.strip():
                raise FetchError(location, f"respuesta vacía (HTTP {resp.status_code})")
            return content

        if parsed.scheme == "file":
            path = Path(url2pathname(parsed.path))
        else:
            path = Path(location)
        return path.read_bytes()

    def fetch(self, location: str, context: ResolutionContext) -> etree._ElementTree:
        """
        Obtiene el documento en `location`.

        Un acierto de cache devuelve el mismo árbol (no una copia). La ubicación
        se marca como visitada solo después de descargar y parsear con éxito.

        Raises:
            FetchError: Si falla la descarga o el XML es inválido
        """
        cached = context.cache.get(location)
        if cached is not None:
            return cached

        logger.info(f"Obteniendo documento: {location}")
        try:
            content = self._load_bytes(location)
        except FetchError:
            raise
        except (requests.RequestException, OSError) as e:
            raise FetchError(location, str(e)) from e

        try:
            root = etree.fromstring(content, parser=_xml_parser(), base_url=location)
        except etree.XMLSyntaxError as e:
            raise FetchError(location, f"XML inválido: {e}") from e

        tree = root.getroottree()
        context.cache[location] = tree
        context.visited.add(location)
        context.fetched.append(location)
        logger.debug(f"Documento obtenido: {location} (root={etree.QName(root).localname})")
        return tree


def is_url_accessible(url: str, timeout: float = 5.0) -> bool:
    """Verifica si una URL responde; nunca lanza excepción."""
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True) as client:
            resp = client.get(url)
        return resp.status_code < 400
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug(f"URL no accesible: {url} - {e}")
        return False
