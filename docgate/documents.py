"""Document envelopes for the ``/lk/documents/create`` endpoint.

The endpoint takes a JSON envelope whose ``product_document`` field is the
Base64 encoding of the document's own JSON. Field names follow the API's
snake_case convention, with the exceptions noted on ProductDocument.
"""

import base64
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, field_serializer

from docgate.executor import HttpMethod, RequestDescriptor

CREATE_DOCUMENT_PATH = "/lk/documents/create"


class ProductGroup(str, Enum):
    """Product group codes accepted in the ``pg`` query parameter."""

    clothes = "clothes"
    shoes = "shoes"
    tobacco = "tobacco"
    perfumery = "perfumery"
    tires = "tires"
    electronics = "electronics"
    pharma = "pharma"
    milk = "milk"
    bicycle = "bicycle"
    wheelchairs = "wheelchairs"


class DocumentFormat(str, Enum):
    MANUAL = "MANUAL"
    XML = "XML"
    CSV = "CSV"


class CertificateDocument(str, Enum):
    """Kind of mandatory certification document."""

    CONFORMITY_CERTIFICATE = "CONFORMITY_CERTIFICATE"
    CONFORMITY_DECLARATION = "CONFORMITY_DECLARATION"


class DocumentType(str, Enum):
    """Document type codes understood by the create endpoint."""

    AGGREGATION_DOCUMENT = "AGGREGATION_DOCUMENT"
    AGGREGATION_DOCUMENT_CSV = "AGGREGATION_DOCUMENT_CSV"
    AGGREGATION_DOCUMENT_XML = "AGGREGATION_DOCUMENT_XML"
    DISAGGREGATION_DOCUMENT = "DISAGGREGATION_DOCUMENT"
    DISAGGREGATION_DOCUMENT_CSV = "DISAGGREGATION_DOCUMENT_CSV"
    DISAGGREGATION_DOCUMENT_XML = "DISAGGREGATION_DOCUMENT_XML"
    REAGGREGATION_DOCUMENT = "REAGGREGATION_DOCUMENT"
    REAGGREGATION_DOCUMENT_CSV = "REAGGREGATION_DOCUMENT_CSV"
    REAGGREGATION_DOCUMENT_XML = "REAGGREGATION_DOCUMENT_XML"
    LP_INTRODUCE_GOODS = "LP_INTRODUCE_GOODS"
    LP_SHIP_GOODS = "LP_SHIP_GOODS"
    LP_SHIP_GOODS_CSV = "LP_SHIP_GOODS_CSV"
    LP_SHIP_GOODS_XML = "LP_SHIP_GOODS_XML"
    LP_INTRODUCE_GOODS_CSV = "LP_INTRODUCE_GOODS_CSV"
    LP_INTRODUCE_GOODS_XML = "LP_INTRODUCE_GOODS_XML"
    LP_ACCEPT_GOODS = "LP_ACCEPT_GOODS"
    LP_ACCEPT_GOODS_XML = "LP_ACCEPT_GOODS_XML"
    LK_REMARK = "LK_REMARK"
    LK_REMARK_CSV = "LK_REMARK_CSV"
    LK_REMARK_XML = "LK_REMARK_XML"
    LK_RECEIPT = "LK_RECEIPT"
    LK_RECEIPT_XML = "LK_RECEIPT_XML"
    LK_RECEIPT_CSV = "LK_RECEIPT_CSV"
    LP_GOODS_IMPORT = "LP_GOODS_IMPORT"
    LP_GOODS_IMPORT_CSV = "LP_GOODS_IMPORT_CSV"
    LP_GOODS_IMPORT_XML = "LP_GOODS_IMPORT_XML"
    LP_CANCEL_SHIPMENT = "LP_CANCEL_SHIPMENT"
    LP_CANCEL_SHIPMENT_CSV = "LP_CANCEL_SHIPMENT_CSV"
    LP_CANCEL_SHIPMENT_XML = "LP_CANCEL_SHIPMENT_XML"
    LK_KM_CANCELLATION = "LK_KM_CANCELLATION"
    LK_KM_CANCELLATION_CSV = "LK_KM_CANCELLATION_CSV"
    LK_KM_CANCELLATION_XML = "LK_KM_CANCELLATION_XML"
    LK_APPLIED_KM_CANCELLATION = "LK_APPLIED_KM_CANCELLATION"
    LK_APPLIED_KM_CANCELLATION_CSV = "LK_APPLIED_KM_CANCELLATION_CSV"
    LK_APPLIED_KM_CANCELLATION_XML = "LK_APPLIED_KM_CANCELLATION_XML"
    LK_CONTRACT_COMMISSIONING = "LK_CONTRACT_COMMISSIONING"
    LK_CONTRACT_COMMISSIONING_CSV = "LK_CONTRACT_COMMISSIONING_CSV"
    LK_CONTRACT_COMMISSIONING_XML = "LK_CONTRACT_COMMISSIONING_XML"
    LK_INDI_COMMISSIONING = "LK_INDI_COMMISSIONING"
    LK_INDI_COMMISSIONING_CSV = "LK_INDI_COMMISSIONING_CSV"
    LK_INDI_COMMISSIONING_XML = "LK_INDI_COMMISSIONING_XML"
    LP_SHIP_RECEIPT = "LP_SHIP_RECEIPT"
    LP_SHIP_RECEIPT_CSV = "LP_SHIP_RECEIPT_CSV"
    LP_SHIP_RECEIPT_XML = "LP_SHIP_RECEIPT_XML"
    OST_DESCRIPTION = "OST_DESCRIPTION"
    OST_DESCRIPTION_CSV = "OST_DESCRIPTION_CSV"
    OST_DESCRIPTION_XML = "OST_DESCRIPTION_XML"
    CROSSBORDER = "CROSSBORDER"
    CROSSBORDER_CSV = "CROSSBORDER_CSV"
    CROSSBORDER_XML = "CROSSBORDER_XML"
    LP_INTRODUCE_OST = "LP_INTRODUCE_OST"
    LP_INTRODUCE_OST_CSV = "LP_INTRODUCE_OST_CSV"
    LP_INTRODUCE_OST_XML = "LP_INTRODUCE_OST_XML"
    LP_RETURN = "LP_RETURN"
    LP_RETURN_CSV = "LP_RETURN_CSV"
    LP_RETURN_XML = "LP_RETURN_XML"
    LP_SHIP_GOODS_CROSSBORDER = "LP_SHIP_GOODS_CROSSBORDER"
    LP_SHIP_GOODS_CROSSBORDER_CSV = "LP_SHIP_GOODS_CROSSBORDER_CSV"
    LP_SHIP_GOODS_CROSSBORDER_XML = "LP_SHIP_GOODS_CROSSBORDER_XML"
    LP_CANCEL_SHIPMENT_CROSSBORDER = "LP_CANCEL_SHIPMENT_CROSSBORDER"


class Product(BaseModel):
    """A single product line inside a document."""

    certificate_document: Optional[CertificateDocument] = None
    certificate_document_date: Optional[str] = None
    certificate_document_number: Optional[str] = None
    owner_inn: Optional[str] = None
    producer_inn: Optional[str] = None
    production_date: Optional[str] = None
    tnved_code: Optional[str] = None
    uit_code: Optional[str] = None
    uitu_code: Optional[str] = None


class ProductDocument(BaseModel):
    """Document body for introducing goods into circulation.

    Two fields break the snake_case convention on the wire:
    ``importRequest`` is a camelCase string ("true"/"false") and
    ``description`` is derived from the participant INN.
    """

    doc_id: str = ""
    doc_status: str = ""
    doc_type: str = ""
    import_request: bool = Field(default=False, serialization_alias="importRequest")
    owner_inn: str = ""
    participant_inn: str = ""
    producer_inn: str = ""
    production_date: str = ""
    production_type: str = ""
    products: List[Product] = Field(default_factory=list)
    reg_date: str = ""
    reg_number: str = ""

    @computed_field  # type: ignore[misc]
    @property
    def description(self) -> Dict[str, str]:
        return {"participantInn": self.participant_inn}

    @field_serializer("import_request")
    def _serialize_import_request(self, value: bool) -> str:
        return "true" if value else "false"

    def encode(self) -> str:
        """Return the Base64 of this document's JSON, as the API expects."""
        payload = self.model_dump_json(by_alias=True)
        return base64.b64encode(payload.encode("utf-8")).decode("ascii")


class DocumentCreateBody(BaseModel):
    """Envelope posted to the document creation endpoint."""

    document_format: DocumentFormat
    product_document: str
    product_group: ProductGroup
    signature: str
    type: DocumentType

    @classmethod
    def introduce_goods(
        cls,
        product_group: ProductGroup,
        document: ProductDocument,
        signature: str,
    ) -> "DocumentCreateBody":
        """Envelope for goods produced in the country and entering circulation."""
        return cls(
            document_format=DocumentFormat.MANUAL,
            product_document=document.encode(),
            product_group=product_group,
            signature=signature,
            type=DocumentType.LP_INTRODUCE_GOODS,
        )

    def to_descriptor(self) -> RequestDescriptor:
        return RequestDescriptor(
            path=CREATE_DOCUMENT_PATH,
            method=HttpMethod.POST,
            query={"pg": self.product_group.value},
            body=self.model_dump_json(),
            requires_auth=True,
            response_key="value",
        )
