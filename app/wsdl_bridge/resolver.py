"""
Resolución de WSDL complejos (imports/includes anidados).

Recorre recursivamente wsdl:import, xsd:import y xsd:include, descarga cada
documento una única vez por resolución, fusiona las construcciones WSDL en el
documento principal e incrusta el contenido de los esquemas en el xsd:schema
que contiene la referencia. El resultado se persiste como un WSDL autocontenido
en un archivo temporal.
"""
import copy
import logging
import os
import tempfile
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from lxml import etree

from .exceptions import FetchError, MergeSkipped
from .fetcher import (
    DocumentFetcher,
    ResolutionContext,
    normalize_root_location,
    resolve_location,
)

logger = logging.getLogger(__name__)

NS_WSDL = "http://schemas.xmlsoap.org/wsdl/"
NS_XSD = "http://www.w3.org/2001/XMLSchema"

# Construcciones WSDL que se copian desde un wsdl:import
MERGED_CONSTRUCTS = ("message", "portType", "binding", "service")

TEMP_DIR_NAME = "wsdl-resolver"
TEMP_FILE_PREFIX = "resolved-wsdl-"

STATUS_MERGED = "merged"
STATUS_INLINED = "inlined"
STATUS_ALREADY_VISITED = "already_visited"
STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class ReferenceOutcome:
    """Resultado de procesar una referencia import/include."""
    kind: str  # wsdl:import, xsd:import, xsd:include
    location: str
    status: str
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != STATUS_SKIPPED


@dataclass
class ResolutionReport:
    root_location: str
    artifact_path: Optional[str] = None
    fetched: List[str] = field(default_factory=list)
    outcomes: List[ReferenceOutcome] = field(default_factory=list)

    @property
    def skipped(self) -> List[ReferenceOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root_location": self.root_location,
            "artifact_path": self.artifact_path,
            "fetched": list(self.fetched),
            "outcomes": [
                {
                    "kind": o.kind,
                    "location": o.location,
                    "status": o.status,
                    "reason": o.reason,
                }
                for o in self.outcomes
            ],
            "skipped_count": len(self.skipped),
        }


@dataclass
class ResolvedWsdl:
    path: str
    report: ResolutionReport
    document: etree._ElementTree


def temp_dir() -> Path:
    return Path(tempfile.gettempdir()) / TEMP_DIR_NAME


def _is_element(node) -> bool:
    # Comentarios e instrucciones de procesamiento tienen tag no-str
    return isinstance(node.tag, str)


def _absolutized_copy(node: etree._Element, base: str) -> etree._Element:
    """Copia profunda cuyas referencias xsd pendientes apuntan a ubicaciones absolutas."""
    clone = copy.deepcopy(node)
    for kind in ("import", "include"):
        for ref in clone.iter(f"{{{NS_XSD}}}{kind}"):
            value = (ref.get("schemaLocation") or "").strip()
            if value:
                ref.set("schemaLocation", resolve_location(base, value))
    return clone


def _find_parent_schema(element: etree._Element) -> Optional[etree._Element]:
    for ancestor in element.iterancestors():
        if ancestor.tag == f"{{{NS_XSD}}}schema":
            return ancestor
    return None


class WsdlResolver:
    """
    Resuelve un WSDL con referencias anidadas en un único documento.

    No guarda estado entre llamadas: cada `resolve` crea su propio
    ResolutionContext, por lo que llamadas concurrentes no se interfieren.
    """

    def __init__(self, fetcher: Optional[DocumentFetcher] = None, output_dir: Optional[Path] = None):
        self.fetcher = fetcher or DocumentFetcher()
        self.output_dir = Path(output_dir) if output_dir else None

    def resolve(self, root_location: str) -> ResolvedWsdl:
        """
        Obtiene y consolida el WSDL completo (incluyendo todas las referencias).

        Args:
            root_location: URL o path del WSDL principal

        Returns:
            ResolvedWsdl con el path del artefacto temporal y el reporte

        Raises:
            FetchError: Solo si falla la descarga del documento raíz
        """
        root_location = normalize_root_location(root_location)
        logger.info(f"Iniciando resolución de WSDL: {root_location}")

        context = ResolutionContext()
        main_tree = self.fetcher.fetch(root_location, context)
        context.consolidated.add(root_location)

        self._resolve_references(main_tree.getroot(), root_location, context)

        report = ResolutionReport(
            root_location=root_location,
            fetched=list(context.fetched),
            outcomes=list(context.outcomes),
        )
        path = self._write_artifact(main_tree)
        report.artifact_path = path

        if report.skipped:
            logger.warning(
                f"Resolución completada con {len(report.skipped)} referencia(s) omitida(s): "
                f"{[o.location for o in report.skipped]}"
            )
        logger.info(f"Resolución de WSDL completada, archivo temporal: {path}")
        return ResolvedWsdl(path=path, report=report, document=main_tree)

    def _resolve_references(self, root: etree._Element, base: str, context: ResolutionContext) -> None:
        self._process_wsdl_imports(root, base, context)
        self._process_schema_references(root, base, context, "import")
        self._process_schema_references(root, base, context, "include")

    # ------------------------------------------------------------------
    # wsdl:import
    # ------------------------------------------------------------------
    def _process_wsdl_imports(self, root: etree._Element, base: str, context: ResolutionContext) -> None:
        for import_elem in list(root.iter(f"{{{NS_WSDL}}}import")):
            location = (import_elem.get("location") or "").strip()
            if not location:
                continue
            absolute = resolve_location(base, location)

            if absolute in context.visited:
                self._handle_already_visited(import_elem, absolute, "location", "wsdl:import", context)
                continue
            if absolute in context.failed:
                import_elem.set("location", absolute)
                continue

            logger.info(f"Procesando wsdl:import: {absolute}")
            try:
                imported = self.fetcher.fetch(absolute, context)
            except FetchError as e:
                logger.warning(f"No se pudo importar WSDL: {absolute} - {e.message}")
                context.failed.add(absolute)
                context.outcomes.append(
                    ReferenceOutcome("wsdl:import", absolute, STATUS_SKIPPED, e.message)
                )
                continue

            imported_root = imported.getroot()
            self._resolve_references(imported_root, absolute, context)
            self._merge_wsdl_document(root, imported_root, absolute)
            context.consolidated.add(absolute)
            self._remove(import_elem)
            context.outcomes.append(ReferenceOutcome("wsdl:import", absolute, STATUS_MERGED))

    def _merge_wsdl_document(
        self, main_root: etree._Element, imported_root: etree._Element, imported_location: str
    ) -> None:
        """Copia types, message, portType, binding y service al documento principal."""
        self._merge_types(main_root, imported_root, imported_location)
        for name in MERGED_CONSTRUCTS:
            for node in imported_root.findall(f"{{{NS_WSDL}}}{name}"):
                main_root.append(copy.deepcopy(node))

    def _merge_types(
        self, main_root: etree._Element, imported_root: etree._Element, imported_location: str
    ) -> None:
        schemas = []
        for types in imported_root.findall(f"{{{NS_WSDL}}}types"):
            schemas.extend(child for child in types if _is_element(child))
        if not schemas:
            return

        main_types = main_root.find(f"{{{NS_WSDL}}}types")
        if main_types is None:
            main_types = etree.Element(f"{{{NS_WSDL}}}types")
            # wsdl:types va después de import/documentation
            position = 0
            for index, child in enumerate(main_root):
                if not _is_element(child):
                    continue
                if child.tag in (f"{{{NS_WSDL}}}import", f"{{{NS_WSDL}}}documentation"):
                    position = index + 1
            main_root.insert(position, main_types)

        for schema in schemas:
            main_types.append(_absolutized_copy(schema, imported_location))

    # ------------------------------------------------------------------
    # xsd:import / xsd:include
    # ------------------------------------------------------------------
    def _process_schema_references(
        self, root: etree._Element, base: str, context: ResolutionContext, kind: str
    ) -> None:
        label = f"xsd:{kind}"
        for ref_elem in list(root.iter(f"{{{NS_XSD}}}{kind}")):
            schema_location = (ref_elem.get("schemaLocation") or "").strip()
            if not schema_location:
                continue
            absolute = resolve_location(base, schema_location)

            if absolute in context.visited:
                self._handle_already_visited(ref_elem, absolute, "schemaLocation", label, context)
                continue
            if absolute in context.failed:
                ref_elem.set("schemaLocation", absolute)
                continue

            logger.info(f"Procesando {label}: {absolute}")
            try:
                schema_tree = self.fetcher.fetch(absolute, context)
            except FetchError as e:
                logger.warning(f"No se pudo procesar {label}: {absolute} - {e.message}")
                context.failed.add(absolute)
                context.outcomes.append(ReferenceOutcome(label, absolute, STATUS_SKIPPED, e.message))
                continue

            schema_root = schema_tree.getroot()
            self._resolve_references(schema_root, absolute, context)
            try:
                self._inline_schema_content(ref_elem, schema_root, absolute)
            except MergeSkipped as e:
                logger.warning(f"{label} sin xsd:schema contenedor, se deja intacto: {absolute}")
                context.outcomes.append(ReferenceOutcome(label, absolute, STATUS_SKIPPED, e.message))
                continue

            context.consolidated.add(absolute)
            context.outcomes.append(ReferenceOutcome(label, absolute, STATUS_INLINED))

    def _inline_schema_content(
        self, ref_elem: etree._Element, schema_root: etree._Element, location: str
    ) -> None:
        """
        Incrusta los hijos del esquema descargado en el xsd:schema que contiene la referencia.

        Raises:
            MergeSkipped: Si la referencia no está dentro de un xsd:schema
        """
        parent_schema = _find_parent_schema(ref_elem)
        if parent_schema is None:
            raise MergeSkipped(location, "No se encontró xsd:schema contenedor")

        for child in schema_root:
            if _is_element(child):
                parent_schema.append(_absolutized_copy(child, location))
        self._remove(ref_elem)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _handle_already_visited(
        self,
        ref_elem: etree._Element,
        absolute: str,
        attribute: str,
        label: str,
        context: ResolutionContext,
    ) -> None:
        if absolute in context.consolidated:
            # El contenido ya forma parte del documento consolidado
            self._remove(ref_elem)
            context.outcomes.append(ReferenceOutcome(label, absolute, STATUS_ALREADY_VISITED))
            return
        # Se conserva; ubicación absoluta para que el artefacto siga siendo cargable
        ref_elem.set(attribute, absolute)
        logger.debug(f"{label} ya visitado y no consolidado, se conserva: {absolute}")

    @staticmethod
    def _remove(element: etree._Element) -> None:
        parent = element.getparent()
        if parent is None:
            return
        # Conservar el tail (espacios) del nodo eliminado
        if element.tail:
            previous = element.getprevious()
            if previous is not None:
                previous.tail = (previous.tail or "") + element.tail
            else:
                parent.text = (parent.text or "") + element.tail
        parent.remove(element)

    def _write_artifact(self, tree: etree._ElementTree) -> str:
        target_dir = self.output_dir or temp_dir()
        target_dir.mkdir(parents=True, exist_ok=True)
        name = f"{TEMP_FILE_PREFIX}{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.wsdl"
        path = target_dir / name
        path.write_bytes(etree.tostring(tree, xml_declaration=True, encoding="UTF-8"))
        return str(path)

    def cleanup_temp_files(self) -> int:
        """Elimina los artefactos resolved-wsdl-* generados. Retorna cuántos se borraron."""
        target_dir = self.output_dir or temp_dir()
        if not target_dir.exists():
            return 0
        removed = 0
        for path in target_dir.glob(f"{TEMP_FILE_PREFIX}*"):
            try:
                os.remove(path)
                removed += 1
                logger.debug(f"Archivo WSDL temporal eliminado: {path.name}")
            except OSError as e:
                logger.warning(f"No se pudo eliminar {path}: {e}")
        return removed
