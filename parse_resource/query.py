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

import copy
import json
import logging

from parse_resource.core import ParseError, RemoteRequestError, UnknownFieldError
from parse_resource.datatypes import GeoPoint, ParseType

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 25


class QueryError(ParseError):
    '''Query error base class'''

    def __init__(self, message, status_code=None):
        super(QueryError, self).__init__(message)
        if status_code:
            self.status_code = status_code


class QueryResourceDoesNotExist(QueryError):
    '''Query returned no results'''
    pass


class QueryResourceMultipleResultsReturned(QueryError):
    '''Query was supposed to return unique result, returned more than one'''
    pass


class QueryManager(object):
    '''
    Entry point for queries on one model, available as Model.Query. Every
    builder method starts from an empty Queryset.
    '''

    def __init__(self, model_class):
        self.model_class = model_class

    def _fetch(self, **kw):
        klass = self.model_class
        response = klass._client().GET(klass.ENDPOINT_ROOT, kw)
        results = response.get('results') if isinstance(response, dict) else None
        if not isinstance(results, list):
            raise RemoteRequestError(
                'Query against %s returned no result list' % klass.ENDPOINT_ROOT)
        logger.debug('%s query returned %d rows', klass.__name__, len(results))
        return [klass._from_remote(row) for row in results]

    def _count(self, **kw):
        klass = self.model_class
        kw.update({"count": 1, "limit": 0})
        response = klass._client().GET(klass.ENDPOINT_ROOT, kw)
        count = response.get('count') if isinstance(response, dict) else None
        if not isinstance(count, int):
            raise RemoteRequestError(
                'Count against %s returned no count' % klass.ENDPOINT_ROOT)
        return count

    def queryset(self):
        return Queryset(self)

    def where(self, **kw):
        return self.queryset().where(**kw)

    def near(self, field, point, max_distance=None, units='miles'):
        return self.queryset().near(field, point, max_distance, units)

    def within_box(self, field, southwest, northeast):
        return self.queryset().within_box(field, southwest, northeast)

    def limit(self, value):
        return self.queryset().limit(value)

    def skip(self, value):
        return self.queryset().skip(value)

    def order(self, field, descending=False):
        return self.queryset().order(field, descending)

    def page(self, number):
        return self.queryset().page(number)

    def per(self, size):
        return self.queryset().per(size)

    def include_relation(self, *names):
        return self.queryset().include_relation(*names)

    def all(self):
        return self.queryset().all()

    def count(self):
        return self.queryset().count()

    def first(self):
        return self.queryset().first()

    def exists(self):
        return self.queryset().exists()

    def get(self, **kw):
        return self.where(**kw).get()

    def find(self, object_id):
        return self.model_class.find(object_id)


class Queryset(object):
    '''
    Immutable set of query criteria. Builder methods return a new Queryset;
    only all(), count(), first(), get() and exists() talk to Parse, and
    each of them sends exactly one request.
    '''

    def __init__(self, manager):
        self._manager = manager
        self._where = {}
        self._options = {}
        self._page = None
        self._per = None
        self._include = []

    def __deepcopy__(self, memo):
        q = self.__class__(self._manager)
        q._where = copy.deepcopy(self._where, memo)
        q._options = dict(self._options)
        q._page = self._page
        q._per = self._per
        q._include.extend(self._include)
        return q

    def __iter__(self):
        return iter(self.all())

    def __len__(self):
        return len(self.all())

    def __getitem__(self, key):
        return self.all()[key]

    @property
    def model_class(self):
        return self._manager.model_class

    def _check_field(self, name):
        if not self.model_class._schema.has_field(name):
            raise UnknownFieldError(self.model_class.__name__, name)

    def _geo_value(self, point):
        if not isinstance(point, GeoPoint):
            raise TypeError('Expected a GeoPoint, got %r' % (point,))
        return point._to_native()

    def params(self):
        """The GET parameters this query is sent with"""
        options = dict(self._options)
        if self._page is not None or self._per is not None:
            per = self._per or DEFAULT_PER_PAGE
            options['limit'] = per
            options['skip'] = ((self._page or 1) - 1) * per
        if self._where:
            options['where'] = json.dumps(self._where, sort_keys=True)
        if self._include:
            options['include'] = ','.join(self._include)
        return options

    def where(self, **kw):
        q = copy.deepcopy(self)
        for name, value in kw.items():
            if name.endswith('__exists'):
                attr = name[:-len('__exists')]
                self._check_field(attr)
                q._where[attr] = {'$exists': bool(value)}
            else:
                self._check_field(name)
                q._where[name] = ParseType.convert_to_parse(value)
        return q

    def near(self, field, point, max_distance=None, units='miles'):
        self._check_field(field)
        constraint = {'$nearSphere': self._geo_value(point)}
        suffix = GeoPoint.unit_suffix(units)
        if max_distance is not None:
            constraint['$maxDistanceIn' + suffix] = max_distance
        q = copy.deepcopy(self)
        q._where[field] = constraint
        return q

    def within_box(self, field, southwest, northeast):
        self._check_field(field)
        q = copy.deepcopy(self)
        q._where[field] = {'$within': {'$box': [self._geo_value(southwest),
                                                self._geo_value(northeast)]}}
        return q

    def limit(self, value):
        q = copy.deepcopy(self)
        q._options['limit'] = int(value)
        return q

    def skip(self, value):
        q = copy.deepcopy(self)
        q._options['skip'] = int(value)
        return q

    def order(self, field, descending=False):
        if field.startswith('-'):
            field, descending = field[1:], True
        self._check_field(field)
        q = copy.deepcopy(self)
        # add a minus sign before the order value if descending == True
        q._options['order'] = descending and ('-' + field) or field
        return q

    def page(self, number):
        if int(number) < 1:
            raise ValueError('Pages are numbered from 1')
        q = copy.deepcopy(self)
        q._page = int(number)
        return q

    def per(self, size):
        if int(size) < 1:
            raise ValueError('Page size must be positive')
        q = copy.deepcopy(self)
        q._per = int(size)
        return q

    def include_relation(self, *names):
        q = copy.deepcopy(self)
        for name in names:
            if name not in q._include:
                q._include.append(name)
        return q

    def all(self):
        return self._manager._fetch(**self.params())

    def count(self):
        options = self.params()
        options.pop('skip', None)
        return self._manager._count(**options)

    def first(self):
        options = self.params()
        options['limit'] = 1
        results = self._manager._fetch(**options)
        return results[0] if results else None

    def exists(self):
        return self.first() is not None

    def get(self):
        results = self.all()
        if len(results) == 0:
            error_message = 'Query against %s returned no results' % (
                    self.model_class.ENDPOINT_ROOT)
            raise QueryResourceDoesNotExist(error_message,
                                            status_code=404)
        if len(results) >= 2:
            error_message = 'Query against %s returned multiple results' % (
                    self.model_class.ENDPOINT_ROOT)
            raise QueryResourceMultipleResultsReturned(error_message,
                                                       status_code=404)
        return results[0]

    def __repr__(self):
        return '<Queryset:%s %r>' % (self.model_class.__name__, self.params())
