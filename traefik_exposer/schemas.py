"""
Traefik Dynamic Configuration Schema

Pydantic models describing the subset of Traefik's HTTP dynamic configuration
this service emits, plus the variants Traefik accepts so documents can be
round-tripped. Every field declares how it is serialized:

* field names are rendered in camelCase (``entry_points`` -> ``entryPoints``)
* optional fields (default ``None``) are left out when unset
* fields declared with ``omit_empty()`` are left out when empty

The rules live on the models; ``TraefikModel`` applies them generically so the
synthesizer never deals with output shaping.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator
from pydantic.alias_generators import to_camel

OMIT = 'omit'
OMIT_NONE = 'none'
OMIT_EMPTY = 'empty'


def omit_empty(default_factory=list):
    """Field that is dropped from the output when empty"""
    return Field(default_factory=default_factory, json_schema_extra={OMIT: OMIT_EMPTY})


def optional(default=None):
    """Field that is dropped from the output when None"""
    return Field(default=default, json_schema_extra={OMIT: OMIT_NONE})


def _omit_rule(field_info) -> Optional[str]:
    extra = field_info.json_schema_extra
    if isinstance(extra, dict) and OMIT in extra:
        return extra[OMIT]
    if field_info.default is None and not field_info.is_required():
        return OMIT_NONE
    return None


class TraefikModel(BaseModel):
    """Base model applying the per-field omit rules on serialization"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='forbid')

    @model_serializer(mode='wrap')
    def apply_omit_rules(self, handler):
        data = handler(self)
        for name, field_info in type(self).model_fields.items():
            rule = _omit_rule(field_info)
            if rule is None:
                continue
            value = getattr(self, name)
            if (rule == OMIT_NONE and value is None) or (rule == OMIT_EMPTY and not value):
                data.pop(field_info.alias or name, None)
                data.pop(name, None)
        return data

    def to_document(self) -> Dict[str, Any]:
        """Plain JSON-compatible dict using Traefik's field names"""
        return self.model_dump(mode='json', by_alias=True)


class OneOfModel(TraefikModel):
    """Tagged union: exactly one field must be set (``{"loadBalancer": {...}}``)"""

    @model_validator(mode='after')
    def check_single_variant(self):
        populated = [name for name in type(self).model_fields if getattr(self, name) is not None]
        if len(populated) != 1:
            raise ValueError(f"{type(self).__name__} needs exactly one variant, got {populated or 'none'}")
        return self


# Routers

class DomainConfig(TraefikModel):
    main: str
    sans: Optional[List[str]] = optional()


class TlsConfig(TraefikModel):
    options: Optional[str] = optional()
    cert_resolver: Optional[str] = optional()
    domains: Optional[List[DomainConfig]] = optional()


class ObservabilityConfig(TraefikModel):
    access_logs: bool
    tracing: bool
    metrics: bool


class RouterConfig(TraefikModel):
    entry_points: List[str] = omit_empty()
    middlewares: List[str] = omit_empty()
    service: str
    rule: str
    rule_syntax: Optional[str] = optional()
    priority: Optional[int] = optional()
    tls: Optional[TlsConfig] = optional()
    observability: Optional[ObservabilityConfig] = optional()


# Services

class ServerConfig(TraefikModel):
    url: str
    weight: int = 1
    preserve_path: bool = True


class CookieConfig(TraefikModel):
    name: str
    secure: bool
    http_only: bool
    same_site: str
    max_age: int
    path: str


class StickyConfig(TraefikModel):
    cookie: CookieConfig


class HealthCheckConfig(TraefikModel):
    scheme: Optional[str] = optional()
    mode: Optional[str] = optional()
    path: Optional[str] = optional()
    method: Optional[str] = optional()
    status: Optional[int] = optional()
    port: Optional[int] = optional()
    interval: Optional[str] = optional()
    timeout: Optional[str] = optional()
    hostname: Optional[str] = optional()
    follow_redirects: Optional[bool] = optional()
    headers: Optional[Dict[str, str]] = optional()


class ResponseForwardingConfig(TraefikModel):
    flush_interval: Optional[str] = optional()


class LoadBalancerConfig(TraefikModel):
    sticky: Optional[StickyConfig] = optional()
    servers: List[ServerConfig] = omit_empty()
    health_check: Optional[HealthCheckConfig] = optional()
    pass_host_header: Optional[bool] = optional()
    response_forwarding: Optional[ResponseForwardingConfig] = optional()
    servers_transport: Optional[str] = optional()


class FailoverConfig(TraefikModel):
    service: str
    fallback: str
    health_check: Optional[HealthCheckConfig] = optional()


class MirrorConfig(TraefikModel):
    name: str
    percent: int


class MirroringConfig(TraefikModel):
    service: str
    mirror_body: bool
    max_body_size: int
    mirrors: List[MirrorConfig] = omit_empty()
    health_check: Optional[HealthCheckConfig] = optional()


class WeightedServiceConfig(TraefikModel):
    name: str
    weight: int


class WeightedConfig(TraefikModel):
    services: List[WeightedServiceConfig] = omit_empty()
    sticky: Optional[StickyConfig] = optional()
    health_check: Optional[HealthCheckConfig] = optional()


class ServiceConfig(OneOfModel):
    failover: Optional[FailoverConfig] = optional()
    load_balancer: Optional[LoadBalancerConfig] = optional()
    mirroring: Optional[MirroringConfig] = optional()
    weighted: Optional[WeightedConfig] = optional()


# Middlewares

class AddPrefixConfig(TraefikModel):
    prefix: str


class BasicAuthConfig(TraefikModel):
    users: List[str] = omit_empty()
    users_file: Optional[str] = optional()
    realm: Optional[str] = optional()
    remove_header: Optional[bool] = optional()
    header_field: Optional[str] = optional()


class ChainConfig(TraefikModel):
    middlewares: List[str] = omit_empty()


class CompressConfig(TraefikModel):
    excluded_content_types: List[str] = omit_empty()
    included_content_types: List[str] = omit_empty()
    min_response_body_bytes: int = 1024
    encodings: List[str] = omit_empty()
    default_encoding: str = ''


class IpStrategyConfig(TraefikModel):
    depth: Optional[int] = optional()
    excluded_ips: List[str] = omit_empty()
    ipv6_subnet: Optional[int] = optional()


class IpAllowListConfig(TraefikModel):
    source_range: List[str] = omit_empty()
    ip_strategy: Optional[IpStrategyConfig] = optional()
    reject_status_code: Optional[int] = optional()


class SourceCriterionConfig(TraefikModel):
    ip_strategy: Optional[IpStrategyConfig] = optional()
    request_header_name: Optional[str] = optional()
    request_host: bool = False


class RateLimitConfig(TraefikModel):
    average: int
    period: str
    burst: int
    source_criterion: SourceCriterionConfig


class RedirectRegexConfig(TraefikModel):
    regex: str
    replacement: str
    permanent: bool


class RedirectSchemeConfig(TraefikModel):
    scheme: str
    port: Optional[str] = optional()
    permanent: bool


class ReplacePathConfig(TraefikModel):
    path: str


class RetryConfig(TraefikModel):
    attempts: int
    initial_interval: str


class StripPrefixConfig(TraefikModel):
    prefixes: List[str] = omit_empty()
    force_slash: bool = False


class MiddlewareConfig(OneOfModel):
    add_prefix: Optional[AddPrefixConfig] = optional()
    basic_auth: Optional[BasicAuthConfig] = optional()
    chain: Optional[ChainConfig] = optional()
    compress: Optional[CompressConfig] = optional()
    ip_allow_list: Optional[IpAllowListConfig] = optional()
    rate_limit: Optional[RateLimitConfig] = optional()
    redirect_regex: Optional[RedirectRegexConfig] = optional()
    redirect_scheme: Optional[RedirectSchemeConfig] = optional()
    replace_path: Optional[ReplacePathConfig] = optional()
    retry: Optional[RetryConfig] = optional()
    strip_prefix: Optional[StripPrefixConfig] = optional()


# Document root

class HttpConfig(TraefikModel):
    # Always rendered, even when empty
    routers: Dict[str, RouterConfig] = Field(default_factory=dict)
    services: Dict[str, ServiceConfig] = Field(default_factory=dict)
    middlewares: Dict[str, MiddlewareConfig] = Field(default_factory=dict)


class TraefikConfig(TraefikModel):
    http: HttpConfig = Field(default_factory=HttpConfig)
