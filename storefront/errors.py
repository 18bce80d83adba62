"""
Taxonomie des erreurs métier de la boutique.
- Chaque erreur porte un status_code HTTP et un message public (générique, sans détail sensible).
- Le détail opérationnel (str(exc)) ne part que dans les logs serveur.
"""
from typing import List, Optional


class StorefrontError(Exception):
    status_code = 500
    public_message = "Erreur interne"


class ValidationError(StorefrontError):
    """Panier mal formé ou champs manquants (400 côté client)."""
    status_code = 400
    public_message = "Panier invalide"

    def __init__(self, message: str = "", errors: Optional[List[str]] = None):
        super().__init__(message or self.public_message)
        self.errors = list(errors or [])


class UpstreamUnavailable(StorefrontError):
    """Catalogue ou fulfillment (Printful) injoignable / réponse non exploitable."""
    status_code = 503
    public_message = "Service temporairement indisponible"


class ProductNotFound(StorefrontError):
    status_code = 404
    public_message = "Produit introuvable"


class AuthenticityError(StorefrontError):
    """Signature webhook invalide: rejet, aucun retry utile."""
    status_code = 400
    public_message = "Webhook signature verification failed"


class PaymentProcessorError(StorefrontError):
    status_code = 500
    public_message = "Failed to create checkout session"


class OrderPersistenceError(StorefrontError):
    """La commande n'a pas pu être rendue durable: Stripe doit relivrer l'événement."""
    status_code = 500
    public_message = "Order could not be recorded"


class FulfillmentSubmissionError(StorefrontError):
    """Échec de soumission Printful: journalisé, non bloquant, reprise manuelle."""


class NotificationError(StorefrontError):
    """Échec d'envoi d'email: journalisé, non bloquant."""
