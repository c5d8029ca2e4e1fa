"""
Excepciones personalizadas para el puente WSDL
"""
from typing import Optional


class WsdlBridgeException(Exception):
    """Excepción base para errores del puente WSDL"""
    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class FetchError(WsdlBridgeException):
    """No se pudo descargar o parsear un documento (WSDL/XSD)"""
    def __init__(self, location: str, message: str):
        self.location = location
        super().__init__(f"No se pudo obtener {location}: {message}", "FETCH")


class MergeSkipped(WsdlBridgeException):
    """Referencia con forma inválida; se deja intacta en el documento"""
    def __init__(self, location: str, message: str):
        self.location = location
        super().__init__(message, "MERGE_SKIPPED")


class NotInitializedError(WsdlBridgeException):
    """No hay cliente SOAP utilizable (modo degradado o sin inicializar)"""
    def __init__(self, message: str = "Cliente WSDL no inicializado"):
        super().__init__(message, "NOT_INITIALIZED")


class ServiceInvocationError(WsdlBridgeException):
    """Falló la llamada remota (transporte o SOAP Fault)"""
    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Error al invocar '{operation}': {message}", "INVOCATION")


class MissingRequiredParameter(WsdlBridgeException):
    """Falta un parámetro requerido; la llamada continúa con None"""
    def __init__(self, parameter: str, operation: Optional[str] = None):
        self.parameter = parameter
        self.operation = operation
        message = f"Falta parámetro requerido: {parameter}"
        if operation:
            message += f" (operación {operation})"
        super().__init__(message, "MISSING_PARAMETER")
