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

import collections
import http.client
import json
import logging
import os
from urllib.error import HTTPError
from urllib.parse import urlencode, urlparse
from urllib.request import Request, urlopen

from parse_resource import core

logger = logging.getLogger(__name__)

API_ROOT = 'https://api.parse.com/1'

# Connection can sometimes hang forever on SSL handshake
CONNECTION_TIMEOUT = 60

# Parse refuses batches with more than 50 requests
BATCH_LIMIT = 50


class Config(object):
    '''Credentials and endpoint of one Parse application'''

    def __init__(self, app_id, master_key=None, rest_key=None,
                 api_root=API_ROOT, timeout=CONNECTION_TIMEOUT):
        if not app_id:
            raise core.ParseError('Missing application id')
        if not (master_key or rest_key):
            raise core.ParseError('Either a master key or a REST key is required')
        self.app_id = app_id
        self.master_key = master_key
        self.rest_key = rest_key
        self.api_root = (api_root or API_ROOT).rstrip('/')
        self.timeout = timeout

    @classmethod
    def from_env(cls, environ=None):
        """
        Build a Config from PARSE_APPLICATION_ID, PARSE_MASTER_KEY,
        PARSE_REST_API_KEY, PARSE_API_ROOT and PARSE_TIMEOUT.
        """
        environ = os.environ if environ is None else environ
        timeout = environ.get('PARSE_TIMEOUT')
        return cls(
            environ.get('PARSE_APPLICATION_ID'),
            master_key=environ.get('PARSE_MASTER_KEY'),
            rest_key=environ.get('PARSE_REST_API_KEY'),
            api_root=environ.get('PARSE_API_ROOT') or API_ROOT,
            timeout=float(timeout) if timeout else CONNECTION_TIMEOUT
        )

    def __repr__(self):
        return '<Config:%s %s>' % (self.app_id, self.api_root)


def urllib_transport(http_verb, url, headers, data, timeout):
    """
    Send one request and return (status, body bytes). HTTP error statuses
    are returned, not raised; only transport failures raise.
    """
    request = Request(url, data, headers, method=http_verb)
    try:
        response = urlopen(request, timeout=timeout)
        with response:
            return response.status, response.read()
    except HTTPError as e:
        return e.code, e.read()
    except (OSError, http.client.HTTPException) as e:
        raise core.RemoteRequestError(
            '%s %s failed: %s' % (http_verb, url, getattr(e, 'reason', e)))


# Using this as "default=" argument solve the problem with Datetime object not being JSON serializable
def date_handler(obj):
    return obj.isoformat() if hasattr(obj, 'isoformat') else obj


class Client(object):
    '''
    Issues requests against one Parse application. A Client only holds its
    Config and transport, so one instance can be shared by every model and
    thread.
    '''

    def __init__(self, config, transport=None):
        self.config = config
        self.transport = transport or urllib_transport

    def url_for(self, uri):
        if uri.startswith('http://') or uri.startswith('https://'):
            return uri
        return self.config.api_root + uri

    def headers(self, extra_headers=None):
        headers = {
            'Content-type': 'application/json',
            'X-Parse-Application-Id': self.config.app_id,
        }
        if self.config.rest_key:
            headers['X-Parse-REST-API-Key'] = self.config.rest_key
        headers.update(extra_headers or {})
        if self.config.master_key and 'X-Parse-Session-Token' not in headers:
            headers['X-Parse-Master-Key'] = self.config.master_key
        return headers

    def execute(self, uri, http_verb, data=None, extra_headers=None,
                batch=False, body=None):
        """
        if batch == False, execute a command with the given parameters and
        return the response JSON.
        If batch == True, return the dictionary that would be used in a batch
        command.
        """
        url = self.url_for(uri)
        if batch:
            ret = {"method": http_verb, "path": urlparse(url).path}
            if data:
                ret["body"] = data
            return ret

        if http_verb == 'GET':
            if data:
                url += '?%s' % urlencode(data)
            payload = None
        elif body is not None:
            payload = body
        else:
            payload = json.dumps(data or {}, default=date_handler).encode('utf-8')

        logger.debug('%s %s', http_verb, url)
        status, raw = self.transport(
            http_verb, url, self.headers(extra_headers), payload,
            self.config.timeout)
        return self._decode(http_verb, url, status, raw)

    def _decode(self, http_verb, url, status, raw):
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        try:
            response = json.loads(raw) if raw else {}
        except ValueError:
            if 200 <= status < 300:
                raise core.RemoteRequestError(
                    'Malformed JSON in response to %s %s' % (http_verb, url),
                    status_code=status)
            response = {}

        if 200 <= status < 300:
            return response

        if not isinstance(response, dict):
            response = {}
        message = response.get('error') or raw or 'HTTP %s' % status
        logger.debug('%s %s answered %s: %s', http_verb, url, status, message)
        raise core.error_for_status(status, message, code=response.get('code'))

    def GET(self, uri, data=None, **kw):
        return self.execute(uri, 'GET', data, **kw)

    def POST(self, uri, data=None, **kw):
        return self.execute(uri, 'POST', data, **kw)

    def PUT(self, uri, data=None, **kw):
        return self.execute(uri, 'PUT', data, **kw)

    def DELETE(self, uri, data=None, **kw):
        return self.execute(uri, 'DELETE', data, **kw)

    def __repr__(self):
        return '<Client:%s>' % self.config.app_id


BatchOperation = collections.namedtuple(
    'BatchOperation', ['request', 'on_success', 'on_failure'])


class ParseBatcher(object):
    """Batch together create, update or delete operations"""

    def __init__(self, client):
        self.client = client

    def batch(self, methods):
        """
        Given a list of create, update or delete methods to call, call all
        of them in batch operations of at most BATCH_LIMIT requests.

        Each method is called with batch=True and returns either a
        BatchOperation or a bool, the latter when it settled locally
        (nothing to send, or failed validation).

        Parse answers a batch with one entry per request, in order: either
        {"success": {...}} or {"error": {"code": ..., "error": ...}}. Each
        entry is handed to its own operation. Returns True when every
        operation succeeded. An exception other than RemoteRequestError
        raised by a handler is re-raised once the rest of its chunk has been
        applied.
        """
        ok = True
        operations = []
        for method in methods:
            prepared = method(batch=True)
            if isinstance(prepared, BatchOperation):
                operations.append(prepared)
            elif not prepared:
                ok = False

        for start in range(0, len(operations), BATCH_LIMIT):
            chunk = operations[start:start + BATCH_LIMIT]
            logger.debug('sending batch of %d requests', len(chunk))
            responses = self.client.POST(
                '/batch', {'requests': [op.request for op in chunk]})
            if not isinstance(responses, list) or len(responses) != len(chunk):
                raise core.RemoteRequestError(
                    'Batch response does not match its %d requests' % len(chunk))
            unexpected = None
            for operation, response in zip(chunk, responses):
                try:
                    if not self._dispatch(operation, response):
                        ok = False
                except Exception as e:
                    # the rest of the chunk is still applied before raising
                    logger.exception('batch result handler failed for %r', operation.request)
                    ok = False
                    unexpected = unexpected or e
            if unexpected is not None:
                raise unexpected
        return ok

    @staticmethod
    def _dispatch(operation, response):
        if not isinstance(response, dict):
            response = {'error': 'Malformed batch result %r' % (response,)}
        if 'success' in response:
            try:
                operation.on_success(response['success'])
                return True
            except core.RemoteRequestError as e:
                failure = e
        else:
            error = response.get('error') or {}
            if not isinstance(error, dict):
                error = {'error': error}
            failure = core.RemoteRequestError(
                error.get('error') or 'Batch operation failed',
                code=error.get('code'))
        operation.on_failure(failure)
        return False

    def batch_save(self, objects):
        """save a list of objects in one operation"""
        return self.batch(o.save for o in objects)

    def batch_delete(self, objects):
        """delete a list of objects in one operation"""
        return self.batch(o.destroy for o in objects)
