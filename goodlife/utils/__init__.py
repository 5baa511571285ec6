# Utils package for GoodLife

from .simple_cache import DomainCollectionCache, TTLCache, domain_collection_key

__all__ = [
    'DomainCollectionCache',
    'TTLCache',
    'domain_collection_key',
]
