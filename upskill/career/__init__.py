from .service import CareerService


__all__ = ["CareerService"]
