"""
CustomResourceDefinition for CloudflareDNSRecord
"""

from typing import Any, Dict

import yaml

from cloudflare_dns_operator.models import GROUP, KIND, PLURAL, SINGULAR, VERSION, RecordType


def _one_of(*keys: str) -> list:
    return [{"required": [key]} for key in keys]


def _key_selector(description: str) -> Dict[str, Any]:
    return {
        "description": description,
        "type": "object",
        "required": ["key", "name"],
        "properties": {
            "key": {"description": "The key to select.", "type": "string"},
            "name": {"description": "Name of the referent.", "type": "string"},
            "optional": {
                "description": "Specify whether the object or its key must be defined",
                "type": "boolean",
            },
        },
    }


def _value_or_reference() -> Dict[str, Any]:
    return {
        "type": "object",
        "oneOf": _one_of("value", "from"),
        "properties": {
            "value": {"type": "string"},
            "from": {
                "type": "object",
                "oneOf": _one_of("configMap", "secret"),
                "properties": {
                    "configMap": _key_selector("Selects a key from a ConfigMap."),
                    "secret": _key_selector("Selects a key of a Secret."),
                },
            },
        },
    }


def _condition() -> Dict[str, Any]:
    return {
        "type": "object",
        "required": ["lastTransitionTime", "message", "reason", "status", "type"],
        "properties": {
            "lastTransitionTime": {"type": "string", "format": "date-time"},
            "message": {"type": "string"},
            "observedGeneration": {"type": "integer", "format": "int64"},
            "reason": {"type": "string"},
            "status": {"type": "string"},
            "type": {"type": "string"},
        },
    }


SPEC_SCHEMA = {
    "description": "Definition of a Cloudflare DNS record.",
    "type": "object",
    "required": ["content", "name", "zone"],
    "properties": {
        "name": {"description": "The name of the record (e.g example.com)", "type": "string"},
        "type": {
            "description": "The type of the record (e.g A, CNAME, MX, TXT, SRV, LOC, SPF, NS). Defaults to A.",
            "type": "string",
            "nullable": True,
            "enum": [t.value for t in RecordType],
        },
        "content": {
            "description": "The content of the record such as an IP address or a service reference.",
            "type": "object",
            "oneOf": _one_of("value", "service"),
            "properties": {
                "value": {"type": "string"},
                "service": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {
                        "name": {"description": "Service name", "type": "string"},
                        "namespace": {
                            "description": "Namespace, default is the same namespace as the referent.",
                            "type": "string",
                            "nullable": True,
                        },
                    },
                },
            },
        },
        "ttl": {"description": "TTL in seconds", "type": "integer", "format": "int64", "nullable": True},
        "proxied": {
            "description": "Whether the record is proxied by Cloudflare",
            "type": "boolean",
            "nullable": True,
        },
        "comment": {"description": "Arbitrary comment", "type": "string", "nullable": True},
        "tags": {
            "description": "Tags to apply to the record",
            "type": "array",
            "items": {"type": "string"},
            "nullable": True,
        },
        "zone": {
            "description": "The cloudflare zone to create the record in, by name or by id",
            "type": "object",
            "oneOf": _one_of("name", "id"),
            "properties": {"name": _value_or_reference(), "id": _value_or_reference()},
        },
    },
}

STATUS_SCHEMA = {
    "description": "Status of a Cloudflare DNS record.",
    "type": "object",
    "nullable": True,
    "x-kubernetes-preserve-unknown-fields": True,
    "properties": {
        "recordId": {"description": "The ID of the cloudflare record", "type": "string"},
        "zoneId": {"description": "The zone ID of the record", "type": "string"},
        "recordName": {"description": "The DNS name the record was created with", "type": "string"},
        "pending": {
            "description": "True until a DNS lookup returns the record content. Always false without DNS checks.",
            "type": "boolean",
        },
        "conditions": {"description": "Status conditions", "type": "array", "items": _condition()},
    },
}


def build_crd() -> Dict[str, Any]:
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": f"{PLURAL}.{GROUP}"},
        "spec": {
            "group": GROUP,
            "names": {"kind": KIND, "plural": PLURAL, "singular": SINGULAR, "shortNames": []},
            "scope": "Namespaced",
            "versions": [
                {
                    "name": VERSION,
                    "served": True,
                    "storage": True,
                    "subresources": {"status": {}},
                    "additionalPrinterColumns": [
                        {"name": "DNS Name", "type": "string", "jsonPath": ".spec.name"},
                        {"name": "Type", "type": "string", "jsonPath": ".spec.type"},
                        {"name": "Pending", "type": "boolean", "jsonPath": ".status.pending"},
                        {
                            "name": "Ready",
                            "type": "string",
                            "jsonPath": '.status.conditions[?(@.type=="Ready")].status',
                        },
                    ],
                    "schema": {
                        "openAPIV3Schema": {
                            "title": KIND,
                            "type": "object",
                            "required": ["spec"],
                            "properties": {"spec": SPEC_SCHEMA, "status": STATUS_SCHEMA},
                        }
                    },
                }
            ],
        },
    }


def render_crd() -> str:
    return yaml.safe_dump(build_crd(), sort_keys=False)
