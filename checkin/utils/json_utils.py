from datetime import date, datetime, timezone
from json import JSONEncoder, dumps

from flask import Response
from pydantic import BaseModel


class CustomJSONEncoder(JSONEncoder):
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, BaseModel):
            return obj.model_dump()
        return super().default(obj)


def custom_jsonify(data, status: int = 200):
    return Response(dumps(data, cls=CustomJSONEncoder), status=status, mimetype="application/json")
