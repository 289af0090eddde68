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
    ParseError, RemoteRequestError, ResourceRequestBadRequest,
    ResourceRequestLoginRequired, ResourceRequestNotFound)
from parse_resource.resource import NEW, ParseResource
from parse_resource.validations import is_blank, validates_presence_of

logger = logging.getLogger(__name__)

# statuses Parse answers with when the credentials themselves are wrong
BAD_CREDENTIALS = (ResourceRequestBadRequest, ResourceRequestLoginRequired,
                   ResourceRequestNotFound)


def login_required(func):
    '''decorator describing User methods that need to be logged in'''
    def ret(obj, *args, **kw):
        if not obj.is_authenticated():
            message = '%s requires a logged-in session' % func.__name__
            raise ResourceRequestLoginRequired(message, status_code=401)
        return func(obj, *args, **kw)
    return ret


class User(ParseResource):
    '''
    A User is like a regular Parse object (can be modified and saved) but
    it requires additional methods and functionality. The password is sent
    to Parse and never kept once a save succeeds.
    '''
    ENDPOINT_ROOT = '/users'
    SYSTEM_CLASS = True
    className = '_User'
    PROTECTED_ATTRIBUTES = ParseResource.PROTECTED_ATTRIBUTES + [
        'sessionToken', 'emailVerified']
    WRITE_ONLY_FIELDS = ('password',)

    fields = ('username', 'password', 'email')
    validations = (validates_presence_of('username'),)

    def validate(self):
        if self.state == NEW and is_blank(self.password):
            self.errors.add('password', "can't be blank")

    def is_authenticated(self):
        return self.sessionToken is not None

    @login_required
    def session_header(self):
        return {'X-Parse-Session-Token': self.sessionToken}

    def _request_headers(self):
        if self.is_authenticated():
            return self.session_header()
        return None

    @classmethod
    def signup(cls, username, password, **kw):
        user = cls(username=username, password=password, **kw)
        if not user.save():
            raise user.remote_error or ParseError(
                'Could not sign up %s: %s' % (username, '; '.join(user.errors.full_messages())))
        return user

    @classmethod
    def authenticate(cls, username, password):
        """
        Log in and return the User with its session token, or None when
        Parse rejects the credentials.
        """
        try:
            data = cls._client().GET('/login', {'username': username,
                                                'password': password})
        except BAD_CREDENTIALS as e:
            logger.debug('login for %s refused: %s', username, e)
            return None
        return cls._from_remote(data)

    @classmethod
    def current_user(cls, session_token):
        headers = {'X-Parse-Session-Token': session_token}
        return cls._from_remote(cls._client().GET('/users/me', extra_headers=headers))

    @classmethod
    def request_password_reset(cls, email):
        '''Trigger Parse\'s Password Process. Return True/False
        indicate success/failure on the request'''
        try:
            cls._client().POST('/requestPasswordReset', {'email': email})
            return True
        except RemoteRequestError as e:
            logger.warning('password reset for %s failed: %s', email, e)
            return False

    def __repr__(self):
        return '<User:%s (Id %s)>' % (self.username, self.objectId)
