#!/usr/bin/env python
#-*- coding: utf-8 -*-

"""
Contains unit tests for Config, Client and the urllib transport
"""

import datetime
import http.client
import io
import json
import unittest
from unittest import mock
from urllib.error import HTTPError, URLError

from parse_resource import connection
from parse_resource.connection import Client, Config, ParseBatcher
from parse_resource.core import (
    ParseError, RemoteRequestError, ResourceRequestForbidden,
    ResourceRequestLoginRequired)
from parse_resource.tests import FakeTransport


class TestConfig(unittest.TestCase):

    def testRequiresApplicationId(self):
        self.assertRaises(ParseError, Config, None, master_key='m')

    def testRequiresAKey(self):
        self.assertRaises(ParseError, Config, 'app')

    def testDefaults(self):
        config = Config('app', rest_key='rest')
        self.assertEqual(config.api_root, connection.API_ROOT)
        self.assertEqual(config.timeout, connection.CONNECTION_TIMEOUT)

    def testTrailingSlashIsDropped(self):
        self.assertEqual(Config('app', 'm', api_root='http://localhost:1337/parse/').api_root,
                         'http://localhost:1337/parse')

    def testFromEnv(self):
        config = Config.from_env({
            'PARSE_APPLICATION_ID': 'app',
            'PARSE_MASTER_KEY': 'master',
            'PARSE_API_ROOT': 'http://localhost:1337/parse',
            'PARSE_TIMEOUT': '5',
        })
        self.assertEqual((config.app_id, config.master_key, config.rest_key),
                         ('app', 'master', None))
        self.assertEqual(config.api_root, 'http://localhost:1337/parse')
        self.assertEqual(config.timeout, 5.0)

    def testFromEmptyEnv(self):
        self.assertRaises(ParseError, Config.from_env, {})


class TestClient(unittest.TestCase):

    def setUp(self):
        self.transport = FakeTransport()
        self.client = Client(Config('app', master_key='master', rest_key='rest'),
                             self.transport)

    def testHeaders(self):
        headers = self.client.headers()
        self.assertEqual(headers['X-Parse-Application-Id'], 'app')
        self.assertEqual(headers['X-Parse-REST-API-Key'], 'rest')
        self.assertEqual(headers['X-Parse-Master-Key'], 'master')
        self.assertEqual(headers['Content-type'], 'application/json')

    def testSessionTokenReplacesMasterKey(self):
        headers = self.client.headers({'X-Parse-Session-Token': 'r:token'})
        self.assertEqual(headers['X-Parse-Session-Token'], 'r:token')
        self.assertNotIn('X-Parse-Master-Key', headers)

    def testGetEncodesParameters(self):
        self.transport.respond({'results': []})
        self.client.GET('/classes/Post', {'where': '{"a": 1}', 'limit': 2})
        call = self.transport.calls[0]
        self.assertEqual(call.params, {'where': '{"a": 1}', 'limit': '2'})
        self.assertIsNone(call.data)

    def testPostEncodesJSON(self):
        self.transport.respond({})
        when = datetime.datetime(2014, 10, 4, 12, 0)
        self.client.POST('/functions/hello', {'at': when, 'n': 1})
        self.assertEqual(self.transport.calls[0].json, {'at': when.isoformat(), 'n': 1})

    def testRawBody(self):
        self.transport.respond({'name': 'a.txt', 'url': 'http://files/a.txt'})
        self.client.POST('/files/a.txt', body=b'hello',
                         extra_headers={'Content-type': 'text/plain'})
        call = self.transport.calls[0]
        self.assertEqual(call.data, b'hello')
        self.assertEqual(call.headers['Content-type'], 'text/plain')

    def testEmptyBodyDecodesToDict(self):
        self.transport.respond(b'')
        self.assertEqual(self.client.DELETE('/classes/Post/x'), {})

    def testAbsoluteURL(self):
        self.transport.respond({})
        self.client.GET('https://example.com/other')
        self.assertEqual(self.transport.calls[0].url, 'https://example.com/other')

    def testBatchRequestDescription(self):
        client = Client(Config('app', 'm', api_root='http://localhost:1337/parse'),
                        self.transport)
        request = client.PUT('/classes/Post/x', {'a': 1}, batch=True)
        self.assertEqual(request, {'method': 'PUT', 'path': '/parse/classes/Post/x',
                                   'body': {'a': 1}})
        self.assertEqual(self.transport.calls, [])

    def testErrorStatuses(self):
        self.transport.respond({'code': 119, 'error': 'no permission'}, status=403)
        self.assertRaises(ResourceRequestForbidden, self.client.GET, '/classes/Post')
        self.transport.respond({'error': 'unauthorized'}, status=401)
        self.assertRaises(ResourceRequestLoginRequired, self.client.GET, '/classes/Post')

    def testNonJSONErrorBody(self):
        self.transport.respond(b'Bad Gateway', status=502)
        with self.assertRaises(RemoteRequestError) as ctx:
            self.client.GET('/classes/Post')
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertEqual(ctx.exception.message, 'Bad Gateway')


class TestUrllibTransport(unittest.TestCase):

    @mock.patch('parse_resource.connection.urlopen')
    def testSuccess(self, urlopen):
        response = urlopen.return_value
        response.status = 201
        response.read.return_value = b'{"objectId": "x"}'
        status, body = connection.urllib_transport(
            'POST', 'https://api.parse.com/1/classes/Post', {'A': 'b'}, b'{}', 7)
        self.assertEqual((status, body), (201, b'{"objectId": "x"}'))
        request = urlopen.call_args[0][0]
        self.assertEqual(request.get_method(), 'POST')
        self.assertEqual(urlopen.call_args[1], {'timeout': 7})

    @mock.patch('parse_resource.connection.urlopen')
    def testHTTPErrorIsReturned(self, urlopen):
        urlopen.side_effect = HTTPError(
            'https://api.parse.com/1/classes/Post', 404, 'Not Found', {},
            io.BytesIO(b'{"code": 101}'))
        status, body = connection.urllib_transport(
            'GET', 'https://api.parse.com/1/classes/Post', {}, None, 7)
        self.assertEqual(status, 404)
        self.assertEqual(json.loads(body.decode('utf-8')), {'code': 101})

    @mock.patch('parse_resource.connection.urlopen')
    def testConnectionFailureRaises(self, urlopen):
        urlopen.side_effect = URLError('connection refused')
        with self.assertRaises(RemoteRequestError) as ctx:
            connection.urllib_transport('GET', 'https://api.parse.com/1/x', {}, None, 7)
        self.assertIsNone(ctx.exception.status_code)

    @mock.patch('parse_resource.connection.urlopen')
    def testTimeoutRaises(self, urlopen):
        urlopen.side_effect = TimeoutError('timed out')
        self.assertRaises(RemoteRequestError, connection.urllib_transport,
                          'GET', 'https://api.parse.com/1/x', {}, None, 7)

    @mock.patch('parse_resource.connection.urlopen')
    def testBadStatusLineRaises(self, urlopen):
        urlopen.side_effect = http.client.BadStatusLine('garbage')
        with self.assertRaises(RemoteRequestError) as ctx:
            connection.urllib_transport('GET', 'https://api.parse.com/1/x', {}, None, 7)
        self.assertIsNone(ctx.exception.status_code)

    @mock.patch('parse_resource.connection.urlopen')
    def testIncompleteReadRaises(self, urlopen):
        urlopen.return_value.read.side_effect = http.client.IncompleteRead(b'{"obj')
        self.assertRaises(RemoteRequestError, connection.urllib_transport,
                          'GET', 'https://api.parse.com/1/x', {}, None, 7)


class TestParseBatcher(unittest.TestCase):

    def testMismatchedResponse(self):
        transport = FakeTransport().respond([])
        batcher = ParseBatcher(Client(Config('app', 'm'), transport))
        operation = connection.BatchOperation(
            {'method': 'DELETE', 'path': '/1/classes/Post/x'},
            lambda response: None, lambda error: None)
        self.assertRaises(RemoteRequestError, batcher.batch, [lambda batch: operation])

    def testLocallySettledMethods(self):
        batcher = ParseBatcher(Client(Config('app', 'm'), FakeTransport()))
        self.assertTrue(batcher.batch([lambda batch: True]))
        self.assertFalse(batcher.batch([lambda batch: True, lambda batch: False]))

    def testMalformedEntryIsAFailure(self):
        transport = FakeTransport().respond(['oops'])
        batcher = ParseBatcher(Client(Config('app', 'm'), transport))
        failures = []
        operation = connection.BatchOperation(
            {'method': 'DELETE', 'path': '/1/classes/Post/x'},
            lambda response: None, failures.append)
        self.assertFalse(batcher.batch([lambda batch: operation]))
        self.assertIsInstance(failures[0], RemoteRequestError)

    def testHandlerErrorStillAppliesRestOfChunk(self):
        transport = FakeTransport().respond([{'success': {}}, {'success': {'n': 2}}])
        batcher = ParseBatcher(Client(Config('app', 'm'), transport))
        applied = []

        def broken(response):
            raise RuntimeError('handler bug')

        first = connection.BatchOperation(
            {'method': 'DELETE', 'path': '/1/classes/Post/x'}, broken, applied.append)
        second = connection.BatchOperation(
            {'method': 'DELETE', 'path': '/1/classes/Post/y'}, applied.append, applied.append)
        with mock.patch.object(connection.logger, 'exception'):
            self.assertRaises(RuntimeError, batcher.batch,
                              [lambda batch: first, lambda batch: second])
        self.assertEqual(applied, [{'n': 2}])


if __name__ == "__main__":
    unittest.main()
