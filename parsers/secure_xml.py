"""Secure XML parsing utilities.

All XML parsing in this project MUST go through this module to prevent:
- XXE (XML External Entity) attacks
- Billion Laughs / entity expansion bombs
- DTD retrieval over network
- Oversized payload denial-of-service
"""

import logging
from xml.sax import SAXParseException
from xml.sax.handler import ContentHandler

from defusedxml import sax as safe_sax
from defusedxml.common import DTDForbidden, EntitiesForbidden, ExternalReferenceForbidden

from core.exceptions import ParsingException
from core.models import MAX_DOCUMENT_BYTES

logger = logging.getLogger(__name__)

MAX_XML_SIZE = MAX_DOCUMENT_BYTES


def parse_xml_events(
    content: bytes, handler: ContentHandler, *, max_size: int = MAX_XML_SIZE
) -> None:
    """Stream XML bytes through a SAX *handler* using defusedxml.

    Raises ``ParsingException`` on any XML security violation or malformed input.
    The handler only ever sees a document that is well-formed up to the point
    of failure, so callers must discard its state when this raises.
    """
    if len(content) > max_size:
        raise ParsingException(
            f"XML payload exceeds size limit ({len(content)} > {max_size} bytes)",
            details={"size": len(content), "max_size": max_size},
        )

    try:
        safe_sax.parseString(content, handler)
    except DTDForbidden:
        raise ParsingException(
            "XML contains forbidden DTD declaration",
            details={"reason": "dtd_forbidden"},
        )
    except EntitiesForbidden:
        raise ParsingException(
            "XML contains forbidden entity definitions (possible entity expansion attack)",
            details={"reason": "entities_forbidden"},
        )
    except ExternalReferenceForbidden:
        raise ParsingException(
            "XML contains forbidden external references (possible XXE attack)",
            details={"reason": "external_reference_forbidden"},
        )
    except SAXParseException as exc:
        raise ParsingException(
            f"Malformed XML: {exc}",
            details={"reason": "parse_error", "line": exc.getLineNumber()},
        )
    except ParsingException:
        raise
    except Exception as exc:
        logger.debug("Unexpected XML failure", exc_info=True)
        raise ParsingException(
            f"XML parsing failed: {exc}",
            details={"reason": "unknown"},
        )
