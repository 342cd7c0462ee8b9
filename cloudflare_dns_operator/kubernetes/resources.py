"""
Kubernetes resource access for the DNS record controller
"""

from datetime import datetime, timezone
import logging
import os
from typing import Any, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from cloudflare_dns_operator.models import GROUP, PLURAL, VERSION

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
RECONCILE_ANNOTATION = f"{GROUP}/reconcile-requested-at"


def load_kube_config():
    """Load in-cluster credentials when running in a pod, kubeconfig otherwise"""
    if os.getenv("KUBERNETES_SERVICE_HOST"):
        try:
            config.load_incluster_config()
            return
        except config.ConfigException:
            logger.warning("In-cluster config unavailable, falling back to kubeconfig")
    config.load_kube_config()


class KubernetesResources:
    """Reads secrets, config maps, services and CloudflareDNSRecords.

    Everything is returned in its JSON (camelCase dict) form so callers handle
    kopf bodies and API reads the same way.
    """

    def __init__(
        self,
        core=None,
        custom=None,
        request_timeout: float = REQUEST_TIMEOUT,
        namespace: Optional[str] = None,
    ):
        self._core = core or client.CoreV1Api()
        self._custom = custom or client.CustomObjectsApi()
        self._timeout = request_timeout
        # Listings stay inside the watched namespace when there is one
        self.namespace = namespace

    @classmethod
    def connect(cls, namespace: Optional[str] = None) -> "KubernetesResources":
        load_kube_config()
        return cls(namespace=namespace)

    def _serialize(self, obj) -> Dict[str, Any]:
        return self._core.api_client.sanitize_for_serialization(obj)

    def _read_optional(self, read, kind: str, name: str, namespace: str) -> Optional[Dict[str, Any]]:
        try:
            obj = read(name=name, namespace=namespace, _request_timeout=self._timeout)
        except ApiException as e:
            if e.status == 404:
                logger.warning(f"{kind} {namespace}/{name} not found")
                return None
            raise
        return self._serialize(obj)

    def read_secret(self, name: str, namespace: str) -> Optional[Dict[str, Any]]:
        return self._read_optional(self._core.read_namespaced_secret, "Secret", name, namespace)

    def read_config_map(self, name: str, namespace: str) -> Optional[Dict[str, Any]]:
        return self._read_optional(
            self._core.read_namespaced_config_map, "ConfigMap", name, namespace
        )

    def read_service(self, name: str, namespace: str) -> Optional[Dict[str, Any]]:
        return self._read_optional(self._core.read_namespaced_service, "Service", name, namespace)

    def list_dns_records(self, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        namespace = namespace or self.namespace
        if namespace:
            result = self._custom.list_namespaced_custom_object(
                GROUP, VERSION, namespace, PLURAL, _request_timeout=self._timeout
            )
        else:
            result = self._custom.list_cluster_custom_object(
                GROUP, VERSION, PLURAL, _request_timeout=self._timeout
            )
        return list(result.get("items", []))

    def get_dns_record(self, name: str, namespace: str) -> Dict[str, Any]:
        return self._custom.get_namespaced_custom_object(
            GROUP, VERSION, namespace, PLURAL, name, _request_timeout=self._timeout
        )

    def request_reconcile(self, name: str, namespace: str) -> None:
        """Touch the record so kopf delivers it to the update handlers again"""
        now = datetime.now(timezone.utc).isoformat()
        body = {"metadata": {"annotations": {RECONCILE_ANNOTATION: now}}}
        logger.debug(f"Requesting reconcile of {namespace}/{name}")
        self._custom.patch_namespaced_custom_object(
            GROUP, VERSION, namespace, PLURAL, name, body, _request_timeout=self._timeout
        )
