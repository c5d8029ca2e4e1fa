from __future__ import annotations

from pathlib import Path

WSDL_NS = "http://schemas.xmlsoap.org/wsdl/"
XSD_NS = "http://www.w3.org/2001/XMLSchema"
TNS = "http://tempuri.org/"


def wsdl(body: str, tns: str = TNS) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<wsdl:definitions xmlns:wsdl="{WSDL_NS}" xmlns:xsd="{XSD_NS}" '
        f'xmlns:soap="http://schemas.xmlsoap.org/wsdl/soap/" '
        f'xmlns:tns="{tns}" targetNamespace="{tns}">\n'
        f"{body}\n"
        "</wsdl:definitions>\n"
    )


def schema(body: str, tns: str = TNS) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<xsd:schema xmlns:xsd="{XSD_NS}" targetNamespace="{tns}" xmlns:tns="{tns}">\n'
        f"{body}\n"
        "</xsd:schema>\n"
    )


def write(directory: Path, name: str, content: str) -> Path:
    path = directory / name
    path.write_text(content, encoding="utf-8")
    return path


CALCULATOR_OPERATIONS = """
  <wsdl:message name="AddRequest">
    <wsdl:part name="amount" type="xsd:int"/>
    <wsdl:part name="note" type="xsd:string"/>
  </wsdl:message>
  <wsdl:message name="AddResponse">
    <wsdl:part name="total" type="xsd:int"/>
  </wsdl:message>
  <wsdl:message name="PingRequest"/>
  <wsdl:message name="PingResponse">
    <wsdl:part name="status" type="xsd:string"/>
  </wsdl:message>
  <wsdl:portType name="CalculatorSoap">
    <wsdl:operation name="Add">
      <wsdl:input message="tns:AddRequest"/>
      <wsdl:output message="tns:AddResponse"/>
    </wsdl:operation>
    <wsdl:operation name="Ping">
      <wsdl:input message="tns:PingRequest"/>
      <wsdl:output message="tns:PingResponse"/>
    </wsdl:operation>
  </wsdl:portType>
"""


def write_calculator_wsdl(directory: Path, name: str = "service.wsdl") -> Path:
    return write(directory, name, wsdl(CALCULATOR_OPERATIONS))


RPC_CALCULATOR = """
  <wsdl:message name="AddRequest">
    <wsdl:part name="amount" type="xsd:int"/>
    <wsdl:part name="note" type="xsd:string"/>
  </wsdl:message>
  <wsdl:message name="AddResponse">
    <wsdl:part name="total" type="xsd:int"/>
    <wsdl:part name="echo" type="xsd:string"/>
  </wsdl:message>
  <wsdl:message name="GetVersionRequest"/>
  <wsdl:message name="GetVersionResponse">
    <wsdl:part name="version" type="xsd:string"/>
  </wsdl:message>
  <wsdl:message name="PingRequest"/>
  <wsdl:message name="PingResponse"/>
  <wsdl:portType name="CalculatorSoap">
    <wsdl:operation name="Add">
      <wsdl:input message="tns:AddRequest"/>
      <wsdl:output message="tns:AddResponse"/>
    </wsdl:operation>
    <wsdl:operation name="GetVersion">
      <wsdl:input message="tns:GetVersionRequest"/>
      <wsdl:output message="tns:GetVersionResponse"/>
    </wsdl:operation>
    <wsdl:operation name="Ping">
      <wsdl:input message="tns:PingRequest"/>
      <wsdl:output message="tns:PingResponse"/>
    </wsdl:operation>
  </wsdl:portType>
  <wsdl:binding name="CalculatorBinding" type="tns:CalculatorSoap">
    <soap:binding style="rpc" transport="http://schemas.xmlsoap.org/soap/http"/>
{binding_operations}
  </wsdl:binding>
  <wsdl:service name="Calculator">
    <wsdl:port name="CalculatorPort" binding="tns:CalculatorBinding">
      <soap:address location="{address}"/>
    </wsdl:port>
  </wsdl:service>
"""

RPC_BINDING_OPERATION = """
    <wsdl:operation name="{name}">
      <soap:operation soapAction="http://tempuri.org/{name}"/>
      <wsdl:input><soap:body use="literal" namespace="http://tempuri.org/"/></wsdl:input>
      <wsdl:output><soap:body use="literal" namespace="http://tempuri.org/"/></wsdl:output>
    </wsdl:operation>"""


def write_rpc_calculator_wsdl(directory: Path, address: str, name: str = "rpc.wsdl") -> Path:
    operations = "".join(RPC_BINDING_OPERATION.format(name=op) for op in ("Add", "GetVersion", "Ping"))
    body = RPC_CALCULATOR.format(binding_operations=operations, address=address)
    return write(directory, name, wsdl(body))
