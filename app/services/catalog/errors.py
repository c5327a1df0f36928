"""
Taxonomie des erreurs du moteur de synchronisation du catalogue.
"""

from typing import List, Optional


class CatalogError(Exception):
    """Erreur de base pour toutes les opérations catalogue."""

    default_message = "Erreur catalogue"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.status_code = status_code


class ConfigurationError(CatalogError):
    """Identifiants du fournisseur absents ou refusés. Fatal."""

    default_message = "Square credentials not configured"


class NotFoundError(CatalogError):
    default_message = "Objet introuvable"


class ConflictError(CatalogError):
    """Jeton de version périmé lors d'une mise à jour."""

    default_message = "Conflit de version: l'objet a été modifié entre-temps"


class ValidationError(CatalogError):
    default_message = "Données invalides"


class MissingVersionError(ValidationError):
    """Mise à jour demandée sans jeton de version."""

    default_message = "Version manquante pour la mise à jour"


class ProviderUnavailable(CatalogError):
    """Réseau, timeout ou erreur 5xx côté fournisseur."""

    default_message = "Square est indisponible"


class PartialFailure(CatalogError):
    """Résultat composite: certains enregistrements ont échoué, d'autres non."""

    default_message = "Certains enregistrements n'ont pas pu être synchronisés"

    def __init__(self, results: List, message: Optional[str] = None):
        super().__init__(message)
        self.results = results


class OwnershipError(CatalogError):
    """Un membre non admin vise l'œuvre d'un autre artiste."""

    default_message = "Cette œuvre appartient à un autre artiste"


class ArchiveWriteError(ProviderUnavailable):
    """Article déjà retiré de Square mais absent de l'archive. `record` permet de le recréer."""

    default_message = "Article supprimé de Square mais non archivé"

    def __init__(self, record, message: Optional[str] = None):
        super().__init__(message)
        self.record = record


ERROR_TYPES = {
    cls.__name__: cls
    for cls in (
        ConfigurationError,
        NotFoundError,
        ConflictError,
        ValidationError,
        MissingVersionError,
        ProviderUnavailable,
        OwnershipError,
    )
}


def error_from_result(error_type: Optional[str], message: Optional[str]) -> CatalogError:
    """Reconstruit l'erreur typée d'un résultat de lot en échec."""
    return ERROR_TYPES.get(error_type or "", CatalogError)(message)
