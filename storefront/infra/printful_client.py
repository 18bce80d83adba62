"""
Adaptateur HTTP Printful (catalogue sync products + commandes).
- Authentification bearer, store_id optionnel ajouté à chaque requête.
- Timeout borné sur chaque appel (config.HTTP_TIMEOUT_SECONDS).
- Retries bornés avec backoff exponentiel + jitter sur les erreurs transitoires
  (transport, 429, 5xx), utilisés pour la création de commande.
- Toute réponse non exploitable lève PrintfulAPIError (sous-classe de UpstreamUnavailable).
"""
import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from storefront import config
from storefront.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}
SYNC_PRODUCTS_PAGE_SIZE = 100


class PrintfulAPIError(UpstreamUnavailable):
    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class PrintfulPayloadError(PrintfulAPIError):
    """Réponse 2xx au payload inexploitable (JSON invalide, result absent ou mal typé)."""


class PrintfulClient:
    def __init__(
        self,
        api_token: str,
        store_id: Optional[str] = None,
        *,
        base_url: str = "https://api.printful.com",
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff: float = 0.5,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not api_token:
            raise ValueError("api_token is required")
        self.store_id = store_id or None
        self.max_retries = max(0, int(max_retries))
        self.backoff = backoff
        self._sleep = sleep
        self._http = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            },
        )

    def close(self) -> None:
        self._http.close()

    def _params(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = dict(extra or {})
        if self.store_id:
            params["store_id"] = self.store_id
        return params

    def _backoff_delay(self, attempt: int) -> float:
        # Full jitter: uniforme entre 0 et backoff * 2^attempt
        return random.uniform(0, self.backoff * (2 ** attempt))

    def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        retries: int = 0,
    ) -> Dict[str, Any]:
        """
        Exécute l'appel et retourne l'enveloppe JSON Printful ({code, result, paging?}).
        - retries: nombre de nouvelles tentatives autorisées sur erreur transitoire.
        """
        attempt = 0
        while True:
            try:
                resp = self._http.request(method, endpoint, params=self._params(params), json=json)
            except httpx.TransportError as e:
                if attempt < retries:
                    delay = self._backoff_delay(attempt)
                    logger.warning("printful %s %s transport error (%s), retry in %.2fs", method, endpoint, e, delay)
                    attempt += 1
                    self._sleep(delay)
                    continue
                raise PrintfulAPIError(f"Printful injoignable: {e}") from e

            if resp.status_code in TRANSIENT_STATUS_CODES and attempt < retries:
                delay = self._backoff_delay(attempt)
                logger.warning("printful %s %s status=%s, retry in %.2fs", method, endpoint, resp.status_code, delay)
                attempt += 1
                self._sleep(delay)
                continue

            if resp.is_error:
                raise PrintfulAPIError(
                    f"Printful API error: {resp.status_code} - {resp.text[:500]}",
                    upstream_status=resp.status_code,
                )
            try:
                data = resp.json()
            except ValueError as e:
                raise PrintfulPayloadError("Réponse Printful non JSON", upstream_status=resp.status_code) from e
            if not isinstance(data, dict) or "result" not in data:
                raise PrintfulPayloadError("Enveloppe Printful invalide (result manquant)", upstream_status=resp.status_code)
            return data

    # --- Catalogue (sync products) ---

    def list_sync_products(self) -> List[Dict[str, Any]]:
        """Parcourt toutes les pages de /sync/products (résumés, sans variantes)."""
        products: List[Dict[str, Any]] = []
        offset = 0
        while True:
            data = self.request("GET", "/sync/products", params={"offset": offset, "limit": SYNC_PRODUCTS_PAGE_SIZE})
            page = data.get("result") or []
            if not isinstance(page, list):
                raise PrintfulPayloadError("Liste de produits Printful invalide")
            products.extend(page)
            total = int(((data.get("paging") or {}).get("total")) or 0)
            offset += len(page)
            if not page or offset >= total:
                break
        logger.info("printful.list_sync_products fetched=%s", len(products))
        return products

    def get_sync_product(self, product_id: Any) -> Dict[str, Any]:
        """Détail d'un produit: {"sync_product": {...}, "sync_variants": [...]}."""
        data = self.request("GET", f"/sync/products/{product_id}")
        result = data.get("result")
        if not isinstance(result, dict):
            raise PrintfulPayloadError(f"Détail produit Printful invalide id={product_id}")
        return result

    # --- Commandes ---

    def create_order(self, order: Dict[str, Any]) -> Dict[str, Any]:
        data = self.request("POST", "/orders", json=order, retries=self.max_retries)
        result = data.get("result")
        if not isinstance(result, dict):
            raise PrintfulPayloadError("Réponse de création de commande Printful invalide")
        return result


_printful: Optional[PrintfulClient] = None

def get_printful_client() -> PrintfulClient:
    global _printful
    if not config.PRINTFUL_API_TOKEN:
        raise UpstreamUnavailable("PRINTFUL_API_TOKEN manquant pour get_printful_client()")
    if _printful is None:
        _printful = PrintfulClient(
            config.PRINTFUL_API_TOKEN,
            config.PRINTFUL_STORE_ID,
            base_url=config.PRINTFUL_API_URL,
            timeout=config.HTTP_TIMEOUT_SECONDS,
            max_retries=config.PRINTFUL_MAX_RETRIES,
            backoff=config.PRINTFUL_RETRY_BACKOFF,
        )
    return _printful

def close_printful_client() -> None:
    global _printful
    if _printful is not None:
        _printful.close()
        _printful = None
