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

from parse_resource.core import (
    ParseError, SchemaError, UnknownFieldError, ProtectedFieldError,
    RemoteRequestError, ResourceRequestBadRequest, ResourceRequestLoginRequired,
    ResourceRequestForbidden, ResourceRequestNotFound, NotFoundError)
from parse_resource.connection import API_ROOT, Config, Client, ParseBatcher
from parse_resource.datatypes import ACL, Bytes, Date, File, GeoPoint, Pointer
from parse_resource.query import (
    QueryError, QueryResourceDoesNotExist, QueryResourceMultipleResultsReturned)
from parse_resource.resource import ParseResource, Object
from parse_resource.user import User
from parse_resource.validations import (
    validates_presence_of, validates_length_of, validates_format_of,
    validates_inclusion_of, validates_numericality_of)

__version__ = '0.3.0'

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'API_ROOT', 'Config', 'Client', 'ParseBatcher',
    'ParseResource', 'Object', 'User',
    'ACL', 'Bytes', 'Date', 'File', 'GeoPoint', 'Pointer',
    'validates_presence_of', 'validates_length_of', 'validates_format_of',
    'validates_inclusion_of', 'validates_numericality_of',
    'ParseError', 'SchemaError', 'UnknownFieldError', 'ProtectedFieldError',
    'RemoteRequestError', 'ResourceRequestBadRequest',
    'ResourceRequestLoginRequired', 'ResourceRequestForbidden',
    'ResourceRequestNotFound', 'NotFoundError',
    'QueryError', 'QueryResourceDoesNotExist',
    'QueryResourceMultipleResultsReturned',
]
