"""
Wire models for the Store submission API.

Every response from the service is wrapped in the same envelope
(``isSuccess``/``responseData``/``errors``). The service does not guarantee
property casing, so decoding matches property names case-insensitively while
encoding always uses camelCase aliases.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class StoreModel(BaseModel):
    """Base model for all Store API payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    @model_validator(mode="before")
    @classmethod
    def _match_keys_case_insensitively(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        known: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            alias = field.alias or name
            known[name.lower()] = alias
            known[alias.lower()] = alias

        return {
            known.get(key.lower(), key) if isinstance(key, str) else key: value
            for key, value in data.items()
        }


class ResponseError(StoreModel):
    code: str | None = None
    target: str | None = None
    message: str | None = None

    def __str__(self) -> str:
        return f"{self.code} - {self.message}"


class BaseEnvelope(StoreModel):
    """Minimal envelope shape: enough to tell a structured failure apart."""

    is_success: bool = False
    errors: list[ResponseError] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def _null_errors_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class Envelope(BaseEnvelope, Generic[T]):
    """Envelope carrying the typed ``responseData`` of a call."""

    response_data: T | None = None


class PublishingStatus(str, Enum):
    INPROGRESS = "INPROGRESS"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object) -> "PublishingStatus":
        members = list(cls)
        if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < len(members):
            return members[value]
        if isinstance(value, str):
            for member in members:
                if member.value == value.upper():
                    return member
        return cls.UNKNOWN


class ModuleStatus(StoreModel):
    is_ready: bool = False
    ongoing_submission_id: str | None = None


class SubmissionStatus(StoreModel):
    publishing_status: PublishingStatus = PublishingStatus.UNKNOWN
    has_failed: bool = False

    @field_validator("publishing_status", mode="before")
    @classmethod
    def _lenient_publishing_status(cls, value: Any) -> Any:
        if value is None:
            return PublishingStatus.UNKNOWN
        return PublishingStatus(value)


class CreateSubmissionResponse(StoreModel):
    polling_url: str | None = None
    submission_id: str | None = None
    ongoing_submission_id: str | None = None


class UpdateMetadataResponse(StoreModel):
    polling_url: str | None = None
    ongoing_submission_id: str | None = None


# Draft payloads. The workflow only passes these through, so every member is
# optional and unknown members are preserved.


class ErrorScenarioDetail(StoreModel):
    error_value: str | None = None
    target_field: str | None = None


class ErrorDetail(StoreModel):
    error_scenario: str | None = None
    error_scenario_details: list[ErrorScenarioDetail] | None = None


class Package(StoreModel):
    package_url: str | None = None
    languages: list[str] | None = None
    architectures: list[str] | None = None
    installer_parameters: str | None = None
    is_silent_install: bool = False
    generic_doc_url: str | None = None
    error_details: list[ErrorDetail] | None = None
    package_type: str | None = None
    package_id: str | None = None


class PackagesMetadataResponse(StoreModel):
    packages: list[Package] | None = None


class Availability(StoreModel):
    markets: list[str] | None = None
    discoverability: str | None = None
    enable_in_future_markets: bool = False
    pricing: str | None = None
    free_trial: str | None = None


class AvailabilityMetadataResponse(StoreModel):
    availability: Availability | None = None


class SystemRequirementDetail(StoreModel):
    minimum_requirement: str | None = None
    recommended_requirement: str | None = None
    hardware_item_type: str | None = None


class Listing(StoreModel):
    language: str | None = None
    description: str | None = None
    product_features: list[str] | None = None
    search_terms: list[str] | None = None
    additional_license_terms: str | None = None
    requirements: list[SystemRequirementDetail] | None = None


class ListingsMetadataResponse(StoreModel):
    listings: list[Listing] | None = None


class ProductDeclarations(StoreModel):
    depends_on_drivers_or_nt: bool = False
    accessibility_support: bool = False
    pen_and_ink_support: bool = False


class IsSystemFeatureRequired(StoreModel):
    is_required: bool = False
    is_recommended: bool = False
    hardware_item_type: str | None = None


class Properties(StoreModel):
    is_privacy_policy_required: bool = False
    privacy_policy_url: str | None = None
    web_site: str | None = None
    support_contact_info: str | None = None
    certification_notes: str | None = None
    category: str | None = None
    sub_category: str | None = None
    product_declarations: ProductDeclarations | None = None
    is_system_feature_required: list[IsSystemFeatureRequired] | None = None
    system_requirement_details: list[SystemRequirementDetail] | None = None


class PropertiesMetadataResponse(StoreModel):
    properties: Properties | None = None


class ImageSize(StoreModel):
    width: int | None = None
    height: int | None = None


class StoreLogo(StoreModel):
    id: str | None = None
    asset_url: str | None = None
    image_size: ImageSize | None = None


class Screenshot(StoreModel):
    id: str | None = None
    asset_url: str | None = None
    image_size: ImageSize | None = None


class ListingAsset(StoreModel):
    language: str | None = None
    store_logos: list[StoreLogo] | None = None
    screenshots: list[Screenshot] | None = None


class ListingAssetsResponse(StoreModel):
    listing_assets: list[ListingAsset] | None = None


class UpdateMetadataRequest(StoreModel):
    """Body of ``PUT .../metadata``; only the populated modules are changed."""

    availability: Availability | None = None
    properties: Properties | None = None
    listings: Listing | None = None
    listings_to_add: list[str] | None = None
    listings_to_remove: list[str] | None = None


class UpdatePackagesRequest(StoreModel):
    packages: list[Package] | None = None
