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

import logging
import re

from parse_resource.connection import BatchOperation, ParseBatcher
from parse_resource.core import (
    NotFoundError, ParseError, ProtectedFieldError, RemoteRequestError,
    ResourceRequestNotFound, SchemaError, UnknownFieldError)
from parse_resource.datatypes import Date, ParseType
from parse_resource.query import QueryManager
from parse_resource.validations import Errors, Validation

logger = logging.getLogger(__name__)

# persistence states
NEW = 'new'
SAVING = 'saving'
PERSISTED = 'persisted'
DESTROYING = 'destroying'
DESTROYED = 'destroyed'

FIELD_NAME = re.compile(r'^[A-Za-z][A-Za-z0-9_]*$')

DATE_FIELDS = ('createdAt', 'updatedAt')


class Schema(object):
    '''Declared fields and validation rules of one model class'''

    def __init__(self, name, fields, protected, validations, write_only=()):
        self.name = name
        self.fields = tuple(fields)
        self.protected = tuple(protected)
        self.validations = tuple(validations)
        self.write_only = tuple(write_only)

    def has_field(self, name):
        return name in self.fields or name in self.protected

    def __repr__(self):
        return '<Schema:%s %s>' % (self.name, ', '.join(self.fields))


def build_schema(cls, name, dct):
    parent = getattr(cls, '_schema', None)
    fields = list(parent.fields) if parent else list(cls.BUILTIN_FIELDS)
    validations = list(parent.validations) if parent else []
    protected = list(cls.PROTECTED_ATTRIBUTES)

    declared = dct.get('fields', ())
    if isinstance(declared, str):
        raise SchemaError('%s.fields must be a sequence of names, not a string' % name)
    for field in declared:
        if field in fields:
            continue
        if not isinstance(field, str) or not FIELD_NAME.match(field):
            raise SchemaError('%s declares invalid field name %r' % (name, field))
        if field in protected:
            raise SchemaError('%s can not declare reserved field %s' % (name, field))
        if hasattr(cls, field):
            raise SchemaError('%s field %s shadows an attribute of the class' % (name, field))
        fields.append(field)

    for rule in dct.get('validations', ()):
        if not isinstance(rule, Validation):
            raise SchemaError('%s validations must be Validation rules, got %r' % (name, rule))
        for field in rule.fields:
            if field not in fields and field not in protected:
                raise SchemaError('%s validates undeclared field %s' % (name, field))
        validations.append(rule)

    return Schema(cls.className, fields, protected, validations,
                  getattr(cls, 'WRITE_ONLY_FIELDS', ()))


class ResourceMetaclass(type):
    def __new__(mcs, name, bases, dct):
        cls = super(ResourceMetaclass, mcs).__new__(mcs, name, bases, dct)
        if 'className' not in dct and not (cls.SYSTEM_CLASS and cls.className):
            cls.className = name
        cls.set_endpoint_root()
        cls._schema = build_schema(cls, name, dct)
        cls.Query = QueryManager(cls)
        return cls


class ParseResource(metaclass=ResourceMetaclass):
    '''
    A record stored in Parse. Subclasses declare their fields and rules:

        class Post(Object):
            fields = ('title', 'author', 'location')
            validations = (validates_presence_of('title'),)

    Instances are not safe to mutate from several threads at once.
    '''

    ENDPOINT_ROOT = None
    PROTECTED_ATTRIBUTES = ['objectId', 'createdAt', 'updatedAt']
    BUILTIN_FIELDS = ('ACL',)
    WRITE_ONLY_FIELDS = ()
    SYSTEM_CLASS = False
    className = None

    _bound_client = None
    remote_error = None

    @classmethod
    def set_endpoint_root(cls):
        return cls.ENDPOINT_ROOT

    @classmethod
    def bind(cls, client):
        """Use client for this model and every subclass that isn't bound itself"""
        cls._bound_client = client
        return client

    @classmethod
    def _client(cls):
        if cls._bound_client is None:
            raise ParseError('Missing connection credentials')
        return cls._bound_client

    @classmethod
    def factory(cls, class_name):
        """
        find the declared subclass whose Parse class name is class_name,
        or None when no model declares it
        """
        types = list(ParseResource.__subclasses__())
        while types:
            t = types.pop(0)
            if t.className == class_name and t.ENDPOINT_ROOT:
                return t
            types.extend(t.__subclasses__())
        return None

    def __init__(self, **kw):
        object.__setattr__(self, '_attributes', {})
        object.__setattr__(self, '_dirty', set())
        object.__setattr__(self, '_errors', Errors())
        object.__setattr__(self, '_state', NEW)
        for key, value in kw.items():
            self.set(key, value)

    @classmethod
    def _from_remote(cls, data):
        obj = cls()
        obj._merge_remote(data)
        if obj.objectId:
            obj._state = PERSISTED
        return obj

    def _merge_remote(self, data):
        """Decode every value of data first, then apply them all at once"""
        decoded = {}
        for key, value in data.items():
            if not self._schema.has_field(key):
                logger.debug('%s ignores undeclared field %s', self.className, key)
                continue
            try:
                if key in DATE_FIELDS and isinstance(value, str):
                    decoded[key] = Date._from_str(value)
                else:
                    decoded[key] = ParseType.convert_from_parse(key, value)
            except (ValueError, TypeError) as e:
                raise RemoteRequestError('Malformed %s in %s response: %s'
                                         % (key, self.className, e))
        self._attributes.update(decoded)
        self._dirty.difference_update(decoded)

    # attribute store

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        return self.get(name)

    def __setattr__(self, name, value):
        if name.startswith('_') or hasattr(type(self), name):
            object.__setattr__(self, name, value)
        else:
            self.set(name, value)

    def get(self, name):
        if not self._schema.has_field(name):
            raise UnknownFieldError(type(self).__name__, name)
        return self._attributes.get(name)

    def set(self, name, value):
        if name in self._schema.protected:
            raise ProtectedFieldError(type(self).__name__, name)
        if name not in self._schema.fields:
            raise UnknownFieldError(type(self).__name__, name)
        self._attributes[name] = value
        self._dirty.add(name)

    def raw_fields(self):
        return dict(self._attributes)

    @property
    def dirty(self):
        return bool(self._dirty)

    @property
    def dirty_fields(self):
        return frozenset(self._dirty)

    @property
    def state(self):
        return self._state

    # validation

    @property
    def errors(self):
        return self._errors

    def validate(self):
        """Hook for model specific checks; add messages to self.errors"""
        pass

    def is_valid(self):
        self._errors = Errors()
        for rule in self._schema.validations:
            rule.validate(self, self._errors)
        self.validate()
        return not self._errors

    # persistence

    def _to_native(self, fields=None):
        native = {}
        for key, value in self._attributes.items():
            if key in self._schema.protected:
                continue
            if fields is not None and key not in fields:
                continue
            if value is None:
                if fields is None:
                    continue
                native[key] = {'__op': 'Delete'}
            else:
                native[key] = ParseType.convert_to_parse(value)
        return native

    def _request_headers(self):
        return None

    @property
    def _absolute_url(self):
        if not self.objectId:
            return None
        return '%s/%s' % (self.ENDPOINT_ROOT, self.objectId)

    def save(self, batch=False):
        """
        Create or update the object. Returns False when validation fails or
        Parse refuses the request; the reason is in errors or remote_error.
        """
        if self._state == DESTROYED:
            raise ParseError('%r has been destroyed' % self)
        if not self.is_valid():
            logger.debug('%r not saved: %s', self,
                         '; '.join(self._errors.full_messages()))
            return False
        if self._state == PERSISTED and not self._dirty:
            return True

        creating = not self.objectId
        if creating:
            uri, http_verb = self.ENDPOINT_ROOT, 'POST'
            payload = self._to_native()
        else:
            uri, http_verb = self._absolute_url, 'PUT'
            payload = self._to_native(self._dirty)
        sent = frozenset(self._dirty)

        def call_back(response_dict):
            self._saved(response_dict, sent, creating)

        client = self._client()
        headers = self._request_headers()
        if batch:
            request = client.execute(uri, http_verb, payload,
                                     extra_headers=headers, batch=True)
            return BatchOperation(request, call_back, self._remote_failure)

        previous = self._state
        self._state = SAVING
        try:
            response = client.execute(uri, http_verb, payload,
                                      extra_headers=headers)
            call_back(response)
        except RemoteRequestError as e:
            self._remote_failure(e)
            return False
        finally:
            if self._state == SAVING:
                self._state = previous
        return True

    def _saved(self, response_dict, sent, creating):
        if creating and not response_dict.get('objectId'):
            raise RemoteRequestError('Parse did not assign an objectId to %r' % self)
        self._merge_remote(response_dict)
        if creating and not self._attributes.get('updatedAt'):
            self._attributes['updatedAt'] = self._attributes.get('createdAt')
        self._dirty.difference_update(sent)
        for field in self._schema.write_only:
            if field in sent:
                self._attributes.pop(field, None)
        self._state = PERSISTED
        self.remote_error = None

    def _remote_failure(self, error):
        logger.warning('%s request for %r failed: %s', self.className, self, error)
        self.remote_error = error

    def destroy(self, batch=False):
        """
        Delete the object from Parse and clear every attribute. Returns False
        when Parse refuses, with the reason in remote_error.
        """
        if self._state == DESTROYED:
            raise ParseError('%r has already been destroyed' % self)
        if not self.objectId:
            raise ParseError('%r has not been saved' % self)

        client = self._client()
        headers = self._request_headers()
        if batch:
            request = client.DELETE(self._absolute_url, extra_headers=headers,
                                    batch=True)
            return BatchOperation(request, lambda response_dict: self._destroyed(),
                                  self._remote_failure)

        previous = self._state
        self._state = DESTROYING
        try:
            client.DELETE(self._absolute_url, extra_headers=headers)
        except RemoteRequestError as e:
            self._remote_failure(e)
            return False
        finally:
            if self._state == DESTROYING:
                self._state = previous
        self._destroyed()
        return True

    def _destroyed(self):
        self._attributes.clear()
        self._dirty.clear()
        self._state = DESTROYED
        self.remote_error = None

    def increment(self, key, amount=1):
        """
        Increment one value in the object. Note that this happens immediately:
        it does not wait for save() to be called
        """
        if key not in self._schema.fields:
            raise UnknownFieldError(type(self).__name__, key)
        if not self.objectId:
            raise ParseError('%r has not been saved' % self)
        payload = {
            key: {
                '__op': 'Increment',
                'amount': amount
                }
            }
        current = self._attributes.get(key) or 0
        response = self._client().PUT(self._absolute_url, payload,
                                      extra_headers=self._request_headers())
        self._merge_remote(response)
        if key not in response:
            self._attributes[key] = current + amount
        self._dirty.discard(key)

    @classmethod
    def find(cls, object_id):
        try:
            data = cls._client().GET('%s/%s' % (cls.ENDPOINT_ROOT, object_id))
        except ResourceRequestNotFound as e:
            raise NotFoundError('%s %s does not exist' % (cls.className, object_id),
                                status_code=e.status_code, code=e.code)
        return cls._from_remote(data)

    @staticmethod
    def _batcher(instances):
        clients = []
        for instance in instances:
            client = type(instance)._client()
            if not any(client is c for c in clients):
                clients.append(client)
        if len(clients) > 1:
            raise ParseError('Batched instances must share one client')
        return ParseBatcher(clients[0])

    @staticmethod
    def save_all(instances):
        """
        Create or update every instance through the batch endpoint. All
        instances must be bound to the same client, else ParseError is raised
        before anything is sent.
        """
        instances = list(instances)
        if not instances:
            return True
        return ParseResource._batcher(instances).batch_save(instances)

    @staticmethod
    def destroy_all(instances):
        """Delete every instance through the batch endpoint, as save_all does"""
        instances = list(instances)
        if not instances:
            return True
        return ParseResource._batcher(instances).batch_delete(instances)

    def __repr__(self):
        return '<%s:%s>' % (self.__class__.__name__, self.objectId)


class Object(ParseResource):
    '''Base class for models stored under /classes/<className>'''
    className = None

    @classmethod
    def set_endpoint_root(cls):
        if cls.className is None:
            return cls.ENDPOINT_ROOT
        cls.ENDPOINT_ROOT = '/'.join(['/classes', cls.className])
        return cls.ENDPOINT_ROOT