#    This program is free software: you can redistribute it and/or modify
#    it under the terms of the GNU General Public License as published by
#    the Free Software Foundation, either version 3 of the License, or
#    (at your option) any later version.
#
#    This program is distributed in the hope that it will be useful,
#    but WITHOUT ANY WARRANTY; without even the implied warranty of
#    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#    GNU General Public License for more details.
#
#    You should have received a copy of the GNU General Public License
#    along with this program.  If not, see <http://www.gnu.org/licenses/>.

import base64
import datetime
import math
import mimetypes
import os

from parse_resource.core import ParseError


def complex_type(name=None):
    '''Decorator for registering complex types'''
    def wrapped(cls):
        ParseType.type_mapping[name or cls.__name__] = cls
        return cls
    return wrapped


class ParseType(object):
    type_mapping = {}

    @staticmethod
    def convert_from_parse(parse_key, parse_data):
        if isinstance(parse_data, list):
            return [ParseType.convert_from_parse(None, v) for v in parse_data]

        if not isinstance(parse_data, dict):
            return parse_data

        parse_type = parse_data.get('__type')
        if parse_type is None and parse_key == 'ACL':
            return ACL.from_native(**parse_data)

        # if its not a parse type -- simply decode its members
        if parse_type is None:
            return dict((k, ParseType.convert_from_parse(k, v))
                        for k, v in parse_data.items())

        native = ParseType.type_mapping.get(parse_type)
        if native is None:
            return dict(parse_data)
        kw = dict((k, v) for k, v in parse_data.items() if k != '__type')
        return native.from_native(**kw)

    @staticmethod
    def convert_to_parse(python_object):
        from parse_resource.resource import ParseResource

        if isinstance(python_object, ParseResource):
            return Pointer.from_object(python_object)._to_native()

        if isinstance(python_object, ParseType):
            return python_object._to_native()

        if isinstance(python_object, datetime.datetime):
            return Date(python_object)._to_native()

        if isinstance(python_object, dict):
            return dict((k, ParseType.convert_to_parse(v))
                        for k, v in python_object.items())

        if isinstance(python_object, (list, tuple, set, frozenset)):
            return [ParseType.convert_to_parse(o) for o in python_object]

        return python_object

    @classmethod
    def from_native(cls, **kw):
        return cls(**kw)

    def _to_native(self):
        raise NotImplementedError("_to_native must be overridden")

    def __eq__(self, other):
        return type(self) is type(other) and self._to_native() == other._to_native()

    def __ne__(self, other):
        return not self == other

    __hash__ = None


@complex_type('Pointer')
class Pointer(ParseType):
    '''Reference to another object by class name and objectId'''

    @classmethod
    def from_native(cls, **kw):
        return cls(kw.get('className'), kw.get('objectId'))

    @classmethod
    def from_object(cls, obj):
        if not obj.objectId:
            raise ParseError('%r must be saved before it can be referenced' % obj)
        return cls(obj.className, obj.objectId)

    def __init__(self, class_name, object_id):
        self.className = class_name
        self.objectId = object_id

    def fetch(self):
        """Load the referenced object through its declared model"""
        from parse_resource.resource import ParseResource

        klass = ParseResource.factory(self.className)
        if klass is None:
            raise ParseError('No model declared for class %s' % self.className)
        return klass.find(self.objectId)

    def _to_native(self):
        return {
            '__type': 'Pointer',
            'className': self.className,
            'objectId': self.objectId
        }

    def __repr__(self):
        return '<Pointer:%s:%s>' % (self.className, self.objectId)


@complex_type('Object')
class EmbeddedObject(ParseType):
    '''Full objects returned in place of pointers by include queries'''

    @classmethod
    def from_native(cls, **kw):
        from parse_resource.resource import ParseResource

        klass = ParseResource.factory(kw.get('className'))
        if klass is None:
            return kw
        data = dict((k, v) for k, v in kw.items() if k != 'className')
        return klass._from_remote(data)


@complex_type()
class Date(ParseType):
    # Parse sends milliseconds; some compatible servers omit the fraction
    FORMATS = ('%Y-%m-%dT%H:%M:%S.%fZ', '%Y-%m-%dT%H:%M:%SZ')

    @classmethod
    def from_native(cls, **kw):
        return cls._from_str(kw.get('iso', ''))

    @staticmethod
    def _from_str(date_str):
        """turn a ISO 8601 string into a datetime object"""
        for date_format in Date.FORMATS:
            try:
                return datetime.datetime.strptime(date_str, date_format)
            except ValueError:
                continue
        raise ValueError('%r is not an ISO 8601 UTC date' % (date_str,))

    def __init__(self, date):
        """Can be initialized either with a string or a datetime"""
        if isinstance(date, datetime.datetime):
            if date.tzinfo is not None:
                date = date.astimezone(datetime.timezone.utc).replace(tzinfo=None)
            self._date = date
        elif isinstance(date, str):
            self._date = Date._from_str(date)
        else:
            raise TypeError('Date expects a datetime or an ISO 8601 string')

    @property
    def date(self):
        return self._date

    def _to_native(self):
        return {  #parse expects an iso8601 with 3 digits milliseonds and not 6
            '__type': 'Date', 'iso': '{0}Z'.format(self._date.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3])
            }


@complex_type('Bytes')
class Bytes(ParseType):

    @classmethod
    def from_native(cls, **kw):
        return cls(base64.b64decode(kw.get('base64', '')))

    def __init__(self, data):
        self.data = data

    def _to_native(self):
        return {'__type': 'Bytes',
                'base64': base64.b64encode(self.data).decode('ascii')}


@complex_type()
class GeoPoint(ParseType):
    # query suffix and earth radius for every supported distance unit
    UNITS = {
        'miles': ('Miles', 3958.8),
        'kilometers': ('Kilometers', 6371.0),
        'radians': ('Radians', 1.0),
    }

    @classmethod
    def from_native(cls, **kw):
        return cls(kw.get('latitude'), kw.get('longitude'))

    @classmethod
    def unit_suffix(cls, units):
        if units not in cls.UNITS:
            raise ValueError('Unknown distance unit %r, expected one of %s'
                             % (units, ', '.join(sorted(cls.UNITS))))
        return cls.UNITS[units][0]

    def __init__(self, latitude, longitude):
        latitude, longitude = float(latitude), float(longitude)
        if not -90.0 <= latitude <= 90.0:
            raise ValueError('latitude %s is outside -90..90' % latitude)
        if not -180.0 <= longitude <= 180.0:
            raise ValueError('longitude %s is outside -180..180' % longitude)
        self.latitude = latitude
        self.longitude = longitude

    def distance_to(self, other, units='miles'):
        """Great circle distance to another GeoPoint"""
        self.unit_suffix(units)
        lat1, lon1 = math.radians(self.latitude), math.radians(self.longitude)
        lat2, lon2 = math.radians(other.latitude), math.radians(other.longitude)
        a = (math.sin((lat2 - lat1) / 2) ** 2 +
             math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2)
        return 2 * math.asin(min(1.0, math.sqrt(a))) * self.UNITS[units][1]

    def _to_native(self):
        return {
            '__type': 'GeoPoint',
            'latitude': self.latitude,
            'longitude': self.longitude
            }

    def __repr__(self):
        return '<GeoPoint:%s,%s>' % (self.latitude, self.longitude)


@complex_type()
class File(ParseType):
    ENDPOINT_ROOT = '/files'

    @classmethod
    def from_native(cls, **kw):
        return cls(kw.get('name'), url=kw.get('url'))

    def __init__(self, name, content=None, mimetype=None, url=None):
        if content is None and url is None:
            with open(name, 'rb') as f:
                content = f.read()
            name = os.path.basename(name)
        if isinstance(content, str):
            content = content.encode('utf-8')
        self._name = name
        self._file_url = url
        self._content = content
        self._mimetype = (mimetype or mimetypes.guess_type(name)[0] or
                          'application/octet-stream')

    def __repr__(self):
        return '<File:%s>' % (getattr(self, '_name', None))

    def _to_native(self):
        return {
            '__type': 'File',
            'name': self._name,
            'url': self._file_url
        }

    def save(self, client):
        if self.url is not None:
            raise ParseError("Files can't be overwritten")
        uri = '/'.join([self.ENDPOINT_ROOT, self.name])
        headers = {'Content-type': self.mimetype}
        response = client.POST(uri, extra_headers=headers, body=self._content)
        self._file_url = response['url']
        self._name = response['name']
        return self

    def delete(self, client):
        uri = '/'.join([self.ENDPOINT_ROOT, self.name])
        client.DELETE(uri)
        self._file_url = None

    mimetype = property(lambda self: self._mimetype)
    url = property(lambda self: self._file_url)
    name = property(lambda self: self._name)


@complex_type()
class ACL(ParseType):

    @classmethod
    def from_native(cls, **kw):
        return cls(kw)

    def __init__(self, acl=None):
        self._acl = dict(acl or {})

    def _to_native(self):
        return dict(self._acl)

    def __repr__(self):
        return '%s(%s)' % (type(self).__name__, repr(self._acl))

    def set_default(self, read=False, write=False):
        self._set_permission("*", read, write)

    def set_role(self, role, read=False, write=False):
        self._set_permission("role:%s" % getattr(role, 'name', role), read, write)

    def set_user(self, user, read=False, write=False):
        self._set_permission(getattr(user, 'objectId', user), read, write)

    def set_all(self, permissions):
        self._acl.clear()
        for k, v in permissions.items():
            self._set_permission(k, **v)

    def _set_permission(self, name, read=False, write=False):
        permissions = {}
        if read is True:
            permissions["read"] = True
        if write is True:
            permissions["write"] = True
        if len(permissions):
            self._acl[name] = permissions
        else:
            self._acl.pop(name, None)
