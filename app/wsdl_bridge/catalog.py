"""
Catálogo de operaciones a partir de la definición WSDL consolidada.

Fuente primaria: portType/operation + message/part del WSDL.
Fuente secundaria: las operaciones que zeep expone en el cliente ya enlazado
(sin información de partes), para cuando el WSDL no se puede analizar.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from lxml import etree

from .fetcher import DocumentFetcher, ResolutionContext
from .models import OperationCatalog, OperationDescriptor, ParameterDescriptor
from .resolver import NS_WSDL

logger = logging.getLogger(__name__)

Definition = Union[str, etree._Element, etree._ElementTree]


class UnreadableMessage(Exception):
    """Referencia a un wsdl:message inexistente."""


def resolve_qname(element: etree._Element, value: Optional[str]) -> Optional[etree.QName]:
    """
    Convierte un QName textual ("tns:Foo" o "Foo") usando los prefijos del elemento.

    Returns:
        etree.QName o None si el valor está vacío
    """
    value = (value or "").strip()
    if not value:
        return None
    if ":" in value:
        prefix, localname = value.split(":", 1)
        namespace = element.nsmap.get(prefix)
    else:
        localname = value
        namespace = element.nsmap.get(None)
    if namespace:
        return etree.QName(namespace, localname)
    return etree.QName(localname)


class OperationCatalogBuilder:
    """Construye descriptores de operación desde portTypes y messages."""

    def __init__(self, fetcher: Optional[DocumentFetcher] = None):
        self.fetcher = fetcher or DocumentFetcher()

    def _root(self, definition: Definition) -> etree._Element:
        if isinstance(definition, etree._ElementTree):
            return definition.getroot()
        if isinstance(definition, etree._Element):
            return definition
        return self.fetcher.fetch(str(definition), ResolutionContext()).getroot()

    def build(self, definition: Definition) -> Dict[str, OperationDescriptor]:
        """Mapa nombre -> OperationDescriptor (si hay nombres duplicados gana el último)."""
        descriptors, _ = self._build(self._root(definition))
        return descriptors

    def build_catalog(self, definition: Definition) -> OperationCatalog:
        descriptors, names = self._build(self._root(definition))
        return OperationCatalog(descriptors=descriptors, names=names, source="wsdl")

    def _build(self, root: etree._Element) -> Tuple[Dict[str, OperationDescriptor], List[str]]:
        messages = self._index_messages(root)
        descriptors: Dict[str, OperationDescriptor] = {}
        names: List[str] = []

        for port_type in root.iter(f"{{{NS_WSDL}}}portType"):
            for operation in port_type.findall(f"{{{NS_WSDL}}}operation"):
                name = operation.get("name")
                if not name:
                    continue
                try:
                    descriptor = OperationDescriptor(
                        name=name,
                        inputs=self._parameters(operation, "input", messages),
                        outputs=self._parameters(operation, "output", messages),
                    )
                except UnreadableMessage as e:
                    logger.warning(f"No se pudo analizar la operación {name}: {e}")
                    continue
                descriptors[name] = descriptor
                names.append(name)
                logger.debug(f"Operación analizada: {name} - parámetros de entrada: {len(descriptor.inputs)}")

        logger.info(f"Información de parámetros analizada para {len(descriptors)} operaciones")
        return descriptors, names

    @staticmethod
    def _index_messages(root: etree._Element) -> Dict[str, etree._Element]:
        messages: Dict[str, etree._Element] = {}
        for message in root.iter(f"{{{NS_WSDL}}}message"):
            name = message.get("name")
            # El primero gana: el documento principal precede a lo importado
            if name and name not in messages:
                messages[name] = message
        return messages

    def _parameters(
        self, operation: etree._Element, direction: str, messages: Dict[str, etree._Element]
    ) -> Tuple[ParameterDescriptor, ...]:
        io_elem = operation.find(f"{{{NS_WSDL}}}{direction}")
        if io_elem is None:
            return ()
        message_ref = resolve_qname(io_elem, io_elem.get("message"))
        if message_ref is None:
            return ()
        message = messages.get(message_ref.localname)
        if message is None:
            raise UnreadableMessage(f"mensaje de {direction} no encontrado: {message_ref.text}")

        params = []
        for order, part in enumerate(message.findall(f"{{{NS_WSDL}}}part")):
            type_name = resolve_qname(part, part.get("type")) or resolve_qname(part, part.get("element"))
            params.append(
                ParameterDescriptor(
                    name=part.get("name") or f"arg{order}",
                    type_name=type_name,
                    required=True,
                    order=order,
                )
            )
            logger.debug(f"Parámetro: {params[-1].name} - tipo: {type_name} - orden: {order}")
        return tuple(params)


class WsdlCatalogSource:
    """Fuente primaria: el WSDL consolidado."""

    def __init__(self, definition: Definition, builder: Optional[OperationCatalogBuilder] = None):
        self.definition = definition
        self.builder = builder or OperationCatalogBuilder()

    def load(self) -> OperationCatalog:
        return self.builder.build_catalog(self.definition)


class TransportCatalogSource:
    """Fuente secundaria: operaciones que el cliente zeep puede enumerar."""

    def __init__(self, client: Any):
        self.client = client

    def load(self) -> OperationCatalog:
        names: List[str] = []
        for service in self.client.wsdl.services.values():
            for port in service.ports.values():
                for name in port.binding._operations.keys():
                    if name not in names:
                        names.append(name)
        logger.info(f"Operaciones enumeradas desde el transporte: {names}")
        return OperationCatalog(
            descriptors={name: OperationDescriptor(name=name) for name in names},
            names=names,
            source="transport",
        )
