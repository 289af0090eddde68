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


class ParseError(Exception):
    '''Base exception for everything raised by parse_resource'''
    pass


class SchemaError(ParseError):
    '''A model class declares an invalid field set or validation'''
    pass


class UnknownFieldError(ParseError, AttributeError):
    '''Access to a field the model never declared'''

    def __init__(self, model_name, field):
        super(UnknownFieldError, self).__init__(
            '%s has no field %r' % (model_name, field))
        self.field = field


class ProtectedFieldError(ParseError, AttributeError):
    '''Field is assigned by the server and can not be set directly'''

    def __init__(self, model_name, field):
        super(ProtectedFieldError, self).__init__(
            '%s.%s is read-only' % (model_name, field))
        self.field = field


class RemoteRequestError(ParseError):
    '''
    A request to Parse failed: either the server answered with a non-2xx
    status, the body was not JSON, or the transport itself failed (in which
    case status_code is None).
    '''

    def __init__(self, message, status_code=None, code=None):
        super(RemoteRequestError, self).__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class ResourceRequestBadRequest(RemoteRequestError):
    '''Request returns a 400'''
    pass


class ResourceRequestLoginRequired(RemoteRequestError):
    '''Request returns a 401'''
    pass


class ResourceRequestForbidden(RemoteRequestError):
    '''Request returns a 403'''
    pass


class ResourceRequestNotFound(RemoteRequestError):
    '''Request returns a 404'''
    pass


class NotFoundError(ResourceRequestNotFound):
    '''Lookup by objectId found nothing'''
    pass


STATUS_ERRORS = {
    400: ResourceRequestBadRequest,
    401: ResourceRequestLoginRequired,
    403: ResourceRequestForbidden,
    404: ResourceRequestNotFound,
}


def error_for_status(status_code, message, code=None):
    exc = STATUS_ERRORS.get(status_code, RemoteRequestError)
    return exc(message, status_code=status_code, code=code)
