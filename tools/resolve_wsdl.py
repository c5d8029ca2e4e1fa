#!/usr/bin/env python3
"""
Resuelve un WSDL con imports/includes anidados a un único archivo y muestra el reporte.

Uso:
    python -m tools.resolve_wsdl wsdl/service.wsdl --operations
    python -m tools.resolve_wsdl https://host/Service.asmx?wsdl --output-dir /tmp/out -v
"""
import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.wsdl_bridge.catalog import OperationCatalogBuilder
from app.wsdl_bridge.exceptions import FetchError
from app.wsdl_bridge.fetcher import DocumentFetcher
from app.wsdl_bridge.resolver import WsdlResolver


def _operations_summary(document) -> list:
    catalog = OperationCatalogBuilder().build_catalog(document)
    summary = []
    for name in catalog.names:
        descriptor = catalog.descriptors[name]
        summary.append({
            "name": name,
            "inputs": [
                {"name": p.name, "type": p.type_name.text if p.type_name is not None else None}
                for p in descriptor.inputs
            ],
        })
    return summary


def main() -> int:
    ap = argparse.ArgumentParser(description="Resuelve un WSDL complejo a un documento autocontenido.")
    ap.add_argument("location", help="URL o path del WSDL principal")
    ap.add_argument("--output-dir", type=Path, default=None, help="Directorio del WSDL consolidado")
    ap.add_argument("--operations", action="store_true", help="Listar operaciones y parámetros")
    ap.add_argument("--timeout", type=float, default=30.0, help="Timeout HTTP por documento (segundos)")
    ap.add_argument("--cleanup", action="store_true", help="Borrar artefactos resolved-wsdl-* y salir")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    resolver = WsdlResolver(DocumentFetcher(timeout=args.timeout), output_dir=args.output_dir)
    if args.cleanup:
        print(f"Artefactos eliminados: {resolver.cleanup_temp_files()}")
        return 0

    try:
        resolved = resolver.resolve(args.location)
    except FetchError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 2

    output = resolved.report.to_dict()
    if args.operations:
        output["operations"] = _operations_summary(resolved.document)
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 1 if resolved.report.skipped else 0


if __name__ == "__main__":
    raise SystemExit(main())
