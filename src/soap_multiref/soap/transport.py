"""HTTP transport for SOAP 1.1 calls.

Builds POST requests with the SOAP headers and hands responses to the
decode facade, so multiRef responses are flattened before binding.
"""

from typing import Any, Optional, Type, TypeVar, Union

import requests

from soap_multiref.shared import SoapConfig, get_logger

SOAP_CONTENT_TYPE = "text/xml; charset=utf-8"

COMPONENT = "soap_transport"

T = TypeVar("T")


def new_request(
    url: str,
    body: Union[str, bytes],
    soap_action: str = "",
    headers: Optional[dict] = None
) -> requests.Request:
    """Build a SOAP 1.1 POST request.

    Args:
        url: Endpoint URL
        body: Complete envelope; text is sent as UTF-8
        soap_action: Value of the ``SOAPAction`` header, sent even when empty
        headers: Additional headers

    Returns:
        An unprepared ``requests.Request``
    """
    if isinstance(body, str):
        body = body.encode("utf-8")

    request_headers = dict(headers or {})
    request_headers["Content-Type"] = SOAP_CONTENT_TYPE
    request_headers["SOAPAction"] = soap_action
    return requests.Request("POST", url, data=body, headers=request_headers)


class SoapClient:
    """Minimal SOAP endpoint client.

    Example:
        >>> with SoapClient("https://example.com/service") as client:
        ...     envelope = client.call(request_xml, ResponseEnvelope)
    """

    def __init__(
        self,
        url: str,
        config: Optional[SoapConfig] = None,
        session: Optional[requests.Session] = None
    ) -> None:
        """Initialize the client.

        Args:
            url: Endpoint URL
            config: Configuration; ``config.transport`` drives HTTP settings
            session: Session to reuse, a new one is created otherwise
        """
        self.url = url
        self.config = config or SoapConfig()
        self.session = session or requests.Session()
        self._owns_session = session is None
        self.logger = get_logger(__name__, self.config.correlation_id, COMPONENT)

    def build_request(self, body: Union[str, bytes]) -> requests.PreparedRequest:
        transport = self.config.transport
        request = new_request(
            self.url, body, transport.soap_action, transport.extra_headers
        )
        return self.session.prepare_request(request)

    def post(self, body: Union[str, bytes]) -> requests.Response:
        """Send ``body`` and return the raw HTTP response.

        HTTP error statuses are not raised: SOAP 1.1 returns Faults with
        status 500 and the body still has to be inspected.

        Raises:
            requests.RequestException: On connection or timeout failures
        """
        prepared = self.build_request(body)
        transport = self.config.transport
        self.logger.debug(
            "Sending SOAP request",
            extra={"url": self.url, "soap_action": transport.soap_action},
        )
        response = self.session.send(
            prepared,
            timeout=transport.timeout_seconds,
            verify=transport.verify_tls,
        )
        self.logger.debug(
            "Received SOAP response",
            extra={"status_code": response.status_code, "bytes": len(response.content)},
        )
        return response

    def call(self, body: Union[str, bytes], target: Optional[Type[T]] = None) -> Any:
        """Post ``body`` and decode the response.

        Returns:
            An instance of ``target``, or the root lxml element when no
            target is given

        Raises:
            SoapFault: If the response carries a Fault
            MalformedXMLError: If the response is not well-formed
            FlattenError: If references cannot be flattened
            DecodeError: If the response does not fit ``target``
        """
        # Import here to avoid circular import with the api package
        from soap_multiref.api.facade import parse_response

        return parse_response(self.post(body), target, self.config)

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "SoapClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
