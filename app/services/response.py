class ListResponseMixin:
    """Adds ``list_response`` to service classes exposing ``list``.

    Service ``list`` methods take ``limit``/``offset`` keyword arguments; the
    response wraps the page with those values so clients can paginate.
    """

    @classmethod
    def list_response(cls, db, **kwargs):
        items = cls.list(db, **kwargs)
        return {
            "items": items,
            "count": len(items),
            "limit": kwargs.get("limit"),
            "offset": kwargs.get("offset"),
        }
