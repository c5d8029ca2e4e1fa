from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from lxml import etree

from app.wsdl_bridge.fetcher import DocumentFetcher
from app.wsdl_bridge.resolver import NS_WSDL, NS_XSD, WsdlResolver

from _wsdl_docs import schema, write, wsdl


class CountingFetcher(DocumentFetcher):
    def __init__(self):
        super().__init__()
        self.loads = []

    def _load_bytes(self, location):
        self.loads.append(location)
        return super()._load_bytes(location)


def _resolver(tmp_path):
    fetcher = CountingFetcher()
    return WsdlResolver(fetcher, output_dir=tmp_path / "out"), fetcher


def test_cyclic_wsdl_imports_terminate_and_fetch_each_location_once(tmp_path):
    write(tmp_path, "a.wsdl", wsdl(
        '<wsdl:import namespace="urn:b" location="b.wsdl"/>\n'
        '<wsdl:message name="FromA"/>'
    ))
    write(tmp_path, "b.wsdl", wsdl(
        '<wsdl:import namespace="urn:a" location="a.wsdl"/>\n'
        '<wsdl:message name="FromB"/>'
    ))
    resolver, fetcher = _resolver(tmp_path)

    resolved = resolver.resolve(str(tmp_path / "a.wsdl"))

    assert sorted(fetcher.loads) == sorted([str(tmp_path / "a.wsdl"), str(tmp_path / "b.wsdl")])
    root = resolved.document.getroot()
    names = [m.get("name") for m in root.findall(f"{{{NS_WSDL}}}message")]
    assert names.count("FromA") == 1
    assert names.count("FromB") == 1
    assert root.findall(f"{{{NS_WSDL}}}import") == []
    assert Path(resolved.path).exists()
    assert resolved.report.skipped == []


def test_diamond_schema_imports_inline_shared_schema_once(tmp_path):
    write(tmp_path, "main.wsdl", wsdl(
        "<wsdl:types>\n"
        '  <xsd:schema targetNamespace="http://tempuri.org/">\n'
        '    <xsd:import namespace="urn:b" schemaLocation="xsd/b.xsd"/>\n'
        '    <xsd:import namespace="urn:c" schemaLocation="xsd/c.xsd"/>\n'
        "  </xsd:schema>\n"
        "</wsdl:types>"
    ))
    (tmp_path / "xsd").mkdir()
    write(tmp_path / "xsd", "b.xsd", schema(
        '<xsd:import namespace="urn:d" schemaLocation="d.xsd"/>\n'
        '<xsd:element name="FromB" type="xsd:string"/>', "urn:b"
    ))
    write(tmp_path / "xsd", "c.xsd", schema(
        '<xsd:import namespace="urn:d" schemaLocation="./d.xsd"/>\n'
        '<xsd:element name="FromC" type="xsd:string"/>', "urn:c"
    ))
    write(tmp_path / "xsd", "d.xsd", schema('<xsd:element name="Shared" type="xsd:int"/>', "urn:d"))
    resolver, fetcher = _resolver(tmp_path)

    resolved = resolver.resolve(str(tmp_path / "main.wsdl"))

    shared = str(tmp_path / "xsd" / "d.xsd")
    assert fetcher.loads.count(shared) == 1
    root = resolved.document.getroot()
    elements = [e.get("name") for e in root.iter(f"{{{NS_XSD}}}element")]
    assert elements.count("Shared") == 1
    assert "FromB" in elements and "FromC" in elements
    assert list(root.iter(f"{{{NS_XSD}}}import")) == []


def test_diamond_wsdl_imports_merge_shared_document_once(tmp_path):
    write(tmp_path, "a.wsdl", wsdl(
        '<wsdl:import namespace="urn:b" location="b.wsdl"/>\n'
        '<wsdl:import namespace="urn:c" location="c.wsdl"/>'
    ))
    write(tmp_path, "b.wsdl", wsdl(
        '<wsdl:import namespace="urn:d" location="d.wsdl"/>\n'
        '<wsdl:message name="B"/>'
    ))
    write(tmp_path, "c.wsdl", wsdl(
        '<wsdl:import namespace="urn:d" location="d.wsdl"/>\n'
        '<wsdl:message name="C"/>'
    ))
    write(tmp_path, "d.wsdl", wsdl('<wsdl:message name="D"/>'))
    resolver, fetcher = _resolver(tmp_path)

    root = resolver.resolve(str(tmp_path / "a.wsdl")).document.getroot()

    names = [m.get("name") for m in root.findall(f"{{{NS_WSDL}}}message")]
    assert sorted(names) == ["B", "C", "D"]
    assert fetcher.loads.count(str(tmp_path / "d.wsdl")) == 1
    assert root.findall(f"{{{NS_WSDL}}}import") == []


def test_xsd_include_content_lands_in_containing_schema(tmp_path):
    write(tmp_path, "main.wsdl", wsdl(
        "<wsdl:types>\n"
        '  <xsd:schema targetNamespace="http://tempuri.org/">\n'
        '    <xsd:include schemaLocation="types.xsd"/>\n'
        "  </xsd:schema>\n"
        "</wsdl:types>"
    ))
    write(tmp_path, "types.xsd", schema('<xsd:complexType name="Order"/>'))
    resolver, _ = _resolver(tmp_path)

    resolved = resolver.resolve(str(tmp_path / "main.wsdl"))

    schema_elem = resolved.document.getroot().find(f"{{{NS_WSDL}}}types/{{{NS_XSD}}}schema")
    assert schema_elem.find(f"{{{NS_XSD}}}complexType").get("name") == "Order"
    assert schema_elem.find(f"{{{NS_XSD}}}include") is None
    assert [o.status for o in resolved.report.outcomes] == ["inlined"]


def test_imported_wsdl_types_are_merged_into_main_types(tmp_path):
    write(tmp_path, "main.wsdl", wsdl('<wsdl:import namespace="urn:x" location="sub/x.wsdl"/>'))
    (tmp_path / "sub").mkdir()
    write(tmp_path / "sub", "x.wsdl", wsdl(
        "<wsdl:types>\n"
        '  <xsd:schema targetNamespace="urn:x">\n'
        '    <xsd:element name="Imported" type="xsd:string"/>\n'
        "  </xsd:schema>\n"
        "</wsdl:types>\n"
        '<wsdl:portType name="XPort"/>'
    ))
    resolver, _ = _resolver(tmp_path)

    root = resolver.resolve(str(tmp_path / "main.wsdl")).document.getroot()

    types = root.findall(f"{{{NS_WSDL}}}types")
    assert len(types) == 1
    assert types[0].find(f"{{{NS_XSD}}}schema/{{{NS_XSD}}}element").get("name") == "Imported"
    assert root.find(f"{{{NS_WSDL}}}portType").get("name") == "XPort"


def test_failed_reference_is_skipped_and_resolution_continues(tmp_path):
    write(tmp_path, "main.wsdl", wsdl(
        '<wsdl:import namespace="urn:gone" location="missing.wsdl"/>\n'
        '<wsdl:message name="Kept"/>'
    ))
    resolver, _ = _resolver(tmp_path)

    resolved = resolver.resolve(str(tmp_path / "main.wsdl"))

    skipped = resolved.report.skipped
    assert len(skipped) == 1
    assert skipped[0].location == str(tmp_path / "missing.wsdl")
    import_elem = resolved.document.getroot().find(f"{{{NS_WSDL}}}import")
    assert import_elem is not None
    assert import_elem.get("location") == str(tmp_path / "missing.wsdl")
    artifact = etree.parse(resolved.path).getroot()
    assert artifact.find(f"{{{NS_WSDL}}}message").get("name") == "Kept"


def test_schema_reference_outside_schema_is_left_in_place(tmp_path):
    write(tmp_path, "main.wsdl", wsdl('<xsd:import namespace="urn:x" schemaLocation="x.xsd"/>'))
    write(tmp_path, "x.xsd", schema('<xsd:element name="Orphan"/>', "urn:x"))
    resolver, _ = _resolver(tmp_path)

    resolved = resolver.resolve(str(tmp_path / "main.wsdl"))

    assert resolved.document.getroot().find(f"{{{NS_XSD}}}import") is not None
    assert [o.status for o in resolved.report.outcomes] == ["skipped"]


def test_artifact_names_are_unique_and_cleanup_removes_them(tmp_path):
    write(tmp_path, "main.wsdl", wsdl('<wsdl:message name="Only"/>'))
    resolver, _ = _resolver(tmp_path)

    first = resolver.resolve(str(tmp_path / "main.wsdl")).path
    second = resolver.resolve(str(tmp_path / "main.wsdl")).path

    assert first != second
    assert Path(first).name.startswith("resolved-wsdl-")
    assert resolver.cleanup_temp_files() == 2
    assert not Path(first).exists()
