#!/usr/bin/env python
#-*- coding: utf-8 -*-

"""
Contains unit tests for the __type tagged values exchanged with Parse
"""

import datetime
import os
import tempfile
import unittest

from parse_resource.connection import Client, Config
from parse_resource.core import ParseError
from parse_resource.datatypes import ACL, Bytes, Date, File, GeoPoint, ParseType, Pointer
from parse_resource.resource import Object
from parse_resource.tests import FakeTransport
from parse_resource.user import User


class GameScore(Object):
    fields = ('score', 'player_name')


class TestPointer(unittest.TestCase):

    def testToNative(self):
        ptr = Pointer.from_object(GameScore._from_remote({'objectId': 'xyz'}))
        self.assertEqual(ptr._to_native(), dict(__type='Pointer', className='GameScore', objectId='xyz'))
        ptr = Pointer.from_object(User._from_remote({'objectId': 'dh56yz', 'username': 'dhelmet@spaceballs.com'}))
        self.assertEqual(ptr._to_native(), dict(__type='Pointer', className='_User', objectId='dh56yz'))

    def testUnsavedObjectCanNotBeReferenced(self):
        self.assertRaises(ParseError, Pointer.from_object, GameScore(score=1))

    def testFetch(self):
        transport = FakeTransport().respond({'objectId': 'xyz', 'score': 1337})
        GameScore.bind(Client(Config('app', 'm'), transport))
        try:
            score = Pointer('GameScore', 'xyz').fetch()
        finally:
            del GameScore._bound_client
        self.assertIsInstance(score, GameScore)
        self.assertEqual(score.score, 1337)
        self.assertEqual(transport.calls[0].path, '/1/classes/GameScore/xyz')

    def testFetchUndeclaredClass(self):
        self.assertRaises(ParseError, Pointer('Nothing', 'x').fetch)


class TestGeoPoint(unittest.TestCase):

    def testRanges(self):
        GeoPoint(90, 180)
        GeoPoint(-90, -180)
        self.assertRaises(ValueError, GeoPoint, 90.5, 0)
        self.assertRaises(ValueError, GeoPoint, 0, -180.1)

    def testNative(self):
        sao_paulo = GeoPoint(-23.5, -46.6167)
        self.assertEqual(sao_paulo._to_native(),
                         {'__type': 'GeoPoint', 'latitude': -23.5, 'longitude': -46.6167})
        self.assertEqual(ParseType.convert_from_parse('location', sao_paulo._to_native()), sao_paulo)

    def testDistance(self):
        sf = GeoPoint(37.7749, -122.4194)
        la = GeoPoint(34.0522, -118.2437)
        self.assertAlmostEqual(sf.distance_to(la, 'kilometers'), 559, delta=2)
        self.assertAlmostEqual(sf.distance_to(la), 347, delta=2)
        self.assertAlmostEqual(sf.distance_to(sf, 'radians'), 0.0)
        self.assertRaises(ValueError, sf.distance_to, la, 'leagues')


class TestDate(unittest.TestCase):

    def testCanConvertDate(self):
        now = datetime.datetime.now()
        iso_date = Date(now)._to_native().get('iso')
        expected = '{0}Z'.format(now.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3])
        self.assertEqual(iso_date, expected, 'Expected %s. Got %s' % (expected, iso_date))

    def testAwareDatesAreSentInUTC(self):
        tz = datetime.timezone(datetime.timedelta(hours=2))
        when = datetime.datetime(2014, 10, 4, 14, 0, tzinfo=tz)
        self.assertEqual(Date(when)._to_native()['iso'], '2014-10-04T12:00:00.000Z')

    def testFromParse(self):
        value = ParseType.convert_from_parse(
            'when', {'__type': 'Date', 'iso': '2011-08-21T18:02:52.249Z'})
        self.assertEqual(value, datetime.datetime(2011, 8, 21, 18, 2, 52, 249000))

    def testFromString(self):
        self.assertEqual(Date('2011-08-21T18:02:52.249Z').date,
                         datetime.datetime(2011, 8, 21, 18, 2, 52, 249000))

    def testFromStringWithoutFraction(self):
        self.assertEqual(Date('2014-10-04T12:30:15Z').date,
                         datetime.datetime(2014, 10, 4, 12, 30, 15))
        value = ParseType.convert_from_parse(
            'when', {'__type': 'Date', 'iso': '2014-10-04T12:30:15Z'})
        self.assertEqual(value, datetime.datetime(2014, 10, 4, 12, 30, 15))

    def testMalformedString(self):
        self.assertRaises(ValueError, Date, 'yesterday')
        self.assertRaises(ValueError, Date, '2014-10-04 12:30:15')


class TestConversion(unittest.TestCase):

    def testNestedValues(self):
        native = ParseType.convert_to_parse({
            'points': [GeoPoint(1, 2)],
            'meta': {'at': datetime.datetime(2014, 1, 1)},
            'plain': 3,
        })
        self.assertEqual(native['points'][0]['__type'], 'GeoPoint')
        self.assertEqual(native['meta']['at']['__type'], 'Date')
        self.assertEqual(native['plain'], 3)

    def testDecodeDoesNotMutate(self):
        data = {'__type': 'GeoPoint', 'latitude': 1, 'longitude': 2}
        ParseType.convert_from_parse('location', data)
        self.assertEqual(data['__type'], 'GeoPoint')

    def testDecodeLists(self):
        value = ParseType.convert_from_parse('refs', [
            {'__type': 'Pointer', 'className': 'GameScore', 'objectId': 'a'}, 'plain'])
        self.assertEqual(value, [Pointer('GameScore', 'a'), 'plain'])

    def testUnknownTypeStaysDict(self):
        data = {'__type': 'Relation', 'className': 'GameScore'}
        self.assertEqual(ParseType.convert_from_parse('rel', data), data)

    def testUndeclaredEmbeddedObjectStaysDict(self):
        value = ParseType.convert_from_parse('x', {
            '__type': 'Object', 'className': 'Nothing', 'objectId': 'a'})
        self.assertEqual(value, {'className': 'Nothing', 'objectId': 'a'})

    def testBytes(self):
        native = Bytes(b'\x00hello')._to_native()
        self.assertEqual(native, {'__type': 'Bytes', 'base64': 'AGhlbGxv'})
        self.assertEqual(ParseType.convert_from_parse('data', native).data, b'\x00hello')


class TestACL(unittest.TestCase):

    def testPermissions(self):
        acl = ACL()
        acl.set_default(read=True)
        acl.set_user('u1', read=True, write=True)
        acl.set_role('admins', write=True)
        self.assertEqual(acl._to_native(), {
            '*': {'read': True},
            'u1': {'read': True, 'write': True},
            'role:admins': {'write': True},
        })
        acl.set_user('u1')
        self.assertNotIn('u1', acl._to_native())

    def testDecodedByKey(self):
        acl = ParseType.convert_from_parse('ACL', {'*': {'read': True}})
        self.assertIsInstance(acl, ACL)
        self.assertEqual(acl, ACL({'*': {'read': True}}))


class TestFile(unittest.TestCase):

    def testSave(self):
        transport = FakeTransport().respond(
            {'name': 'tfss-1-hello.txt', 'url': 'http://files.parse.com/tfss-1-hello.txt'})
        f = File('hello.txt', 'hello world')
        self.assertEqual(f.mimetype, 'text/plain')
        f.save(Client(Config('app', 'm'), transport))

        call = transport.calls[0]
        self.assertEqual((call.http_verb, call.path), ('POST', '/1/files/hello.txt'))
        self.assertEqual(call.data, b'hello world')
        self.assertEqual(call.headers['Content-type'], 'text/plain')
        self.assertEqual(f.name, 'tfss-1-hello.txt')
        self.assertEqual(f._to_native(), {'__type': 'File', 'name': 'tfss-1-hello.txt',
                                          'url': 'http://files.parse.com/tfss-1-hello.txt'})
        self.assertRaises(ParseError, f.save, None)

    def testDelete(self):
        transport = FakeTransport().respond({})
        f = ParseType.convert_from_parse('photo', {
            '__type': 'File', 'name': 'tfss-1-a.png', 'url': 'http://files/tfss-1-a.png'})
        f.delete(Client(Config('app', 'm'), transport))

        call = transport.calls[0]
        self.assertEqual((call.http_verb, call.path), ('DELETE', '/1/files/tfss-1-a.png'))
        self.assertEqual(call.headers['X-Parse-Master-Key'], 'm')
        self.assertIsNone(f.url)

    def testReadsLocalFile(self):
        fd, path = tempfile.mkstemp(suffix='.bin')
        with os.fdopen(fd, 'wb') as out:
            out.write(b'\x01\x02')
        try:
            f = File(path)
        finally:
            os.remove(path)
        self.assertEqual(f.name, os.path.basename(path))
        self.assertEqual(f._content, b'\x01\x02')
        self.assertEqual(f.mimetype, 'application/octet-stream')

    def testFromParse(self):
        f = ParseType.convert_from_parse('photo', {
            '__type': 'File', 'name': 'a.png', 'url': 'http://files/a.png'})
        self.assertIsInstance(f, File)
        self.assertEqual(f.url, 'http://files/a.png')


if __name__ == "__main__":
    unittest.main()
