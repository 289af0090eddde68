#!/usr/bin/env python
#-*- coding: utf-8 -*-

"""
Contains unit tests for the models, queries and persistence of parse_resource.
Requests never leave the process: a FakeTransport records them and answers
with canned responses.
"""

import datetime
import json
import unittest
from urllib.parse import parse_qs, urlsplit

from parse_resource.connection import Client, Config
from parse_resource.core import (
    NotFoundError, ParseError, ProtectedFieldError, RemoteRequestError,
    ResourceRequestBadRequest, SchemaError, UnknownFieldError)
from parse_resource.datatypes import GeoPoint, Pointer
from parse_resource import query
from parse_resource.resource import (
    DESTROYED, NEW, PERSISTED, Object, ParseResource)
from parse_resource.validations import (
    validates_format_of, validates_inclusion_of, validates_length_of,
    validates_numericality_of, validates_presence_of)


class Call(object):
    def __init__(self, http_verb, url, headers, data):
        self.http_verb = http_verb
        self.url = url
        self.headers = headers
        self.data = data

    @property
    def path(self):
        return urlsplit(self.url).path

    @property
    def params(self):
        return dict((k, v[0]) for k, v in parse_qs(urlsplit(self.url).query).items())

    @property
    def json(self):
        return json.loads(self.data.decode('utf-8')) if self.data else None

    def __repr__(self):
        return '<Call %s %s>' % (self.http_verb, self.url)


class FakeTransport(object):
    '''Stands in for urllib_transport; answers from a queue of responses'''

    def __init__(self):
        self.calls = []
        self.responses = []

    def respond(self, body, status=200):
        self.responses.append((status, body))
        return self

    def fail(self, exc):
        self.responses.append((None, exc))
        return self

    def __call__(self, http_verb, url, headers, data, timeout):
        self.calls.append(Call(http_verb, url, headers, data))
        if not self.responses:
            raise AssertionError('unexpected request %s %s' % (http_verb, url))
        status, body = self.responses.pop(0)
        if isinstance(body, Exception):
            raise body
        if not isinstance(body, (bytes, str)):
            body = json.dumps(body)
        return status, body


class Post(Object):
    fields = ('title', 'author', 'body', 'location', 'views', 'published_at', 'tags')
    validations = (validates_presence_of('title'),)


class Comment(Object):
    fields = ('text', 'post')


class Article(Post):
    fields = ('summary',)


CREATED = {'objectId': 'abc123', 'createdAt': '2014-10-04T12:30:15.123Z'}
UPDATED = {'updatedAt': '2014-10-05T08:00:00.000Z'}


class ParseTestCase(unittest.TestCase):

    def setUp(self):
        self.transport = FakeTransport()
        self.client = Client(Config('app-id', master_key='master'), self.transport)
        ParseResource.bind(self.client)

    def tearDown(self):
        ParseResource.bind(None)

    def saved_post(self, **kw):
        kw.setdefault('title', 'Hello')
        return Post._from_remote(dict(kw, objectId='abc123',
                                      createdAt='2014-10-04T12:30:15.123Z',
                                      updatedAt='2014-10-04T12:30:15.123Z'))


class TestAttributes(ParseTestCase):

    def testSetThenGet(self):
        post = Post()
        post.set('author', 'Arrington')
        self.assertEqual(post.get('author'), 'Arrington')
        self.assertTrue(post.dirty)
        self.assertEqual(post.dirty_fields, frozenset(['author']))

    def testAttributeSyntax(self):
        post = Post(title='Hello')
        post.views = 10
        self.assertEqual(post.title, 'Hello')
        self.assertEqual(post.get('views'), 10)
        self.assertIsNone(post.body, 'unset fields should read as None')

    def testSettingSameValueMarksDirty(self):
        post = self.saved_post(author='Arrington')
        self.assertFalse(post.dirty)
        post.author = 'Arrington'
        self.assertEqual(post.dirty_fields, frozenset(['author']))

    def testUnknownField(self):
        post = Post()
        self.assertRaises(UnknownFieldError, post.set, 'color', 'red')
        self.assertRaises(UnknownFieldError, post.get, 'color')
        with self.assertRaises(UnknownFieldError):
            post.color = 'red'
        self.assertIsNone(getattr(post, 'color', None))
        self.assertRaises(UnknownFieldError, Post, color='red')
        self.assertEqual(self.transport.calls, [])

    def testReservedFieldsAreReadOnly(self):
        post = Post()
        with self.assertRaises(ProtectedFieldError):
            post.objectId = 'forged'
        self.assertRaises(ProtectedFieldError, post.set, 'createdAt', datetime.datetime.now())
        self.assertRaises(ProtectedFieldError, Post, updatedAt='x')
        self.assertIsNone(post.objectId)

    def testRawFields(self):
        post = Post(title='Hello', views=3)
        raw = post.raw_fields()
        self.assertEqual(raw, {'title': 'Hello', 'views': 3})
        raw['title'] = 'changed'
        self.assertEqual(post.title, 'Hello', 'raw_fields must return a copy')

    def testSubclassInheritsFields(self):
        article = Article(title='Hello', summary='short')
        self.assertEqual(article.summary, 'short')
        self.assertRaises(UnknownFieldError, Post, summary='short')
        self.assertEqual(Article.ENDPOINT_ROOT, '/classes/Article')

    def testBuiltinACLField(self):
        self.assertIn('ACL', Post._schema.fields)

    def testSchemaRejectsReservedField(self):
        with self.assertRaises(SchemaError):
            class Broken(Object):
                fields = ('objectId',)

    def testSchemaRejectsShadowingField(self):
        with self.assertRaises(SchemaError):
            class Broken(Object):
                fields = ('save',)

    def testSchemaRejectsUndeclaredValidation(self):
        with self.assertRaises(SchemaError):
            class Broken(Object):
                fields = ('title',)
                validations = (validates_presence_of('name'),)

    def testSchemaRejectsStringFields(self):
        with self.assertRaises(SchemaError):
            class Broken(Object):
                fields = 'title'

    def testNewInstanceState(self):
        post = Post(title='Hello')
        self.assertEqual(post.state, NEW)
        self.assertIsNone(post.objectId)


class TestValidation(ParseTestCase):

    def testPresence(self):
        post = Post()
        self.assertFalse(post.is_valid())
        self.assertTrue(post.errors['title'])
        post.title = 'Hello'
        self.assertTrue(post.is_valid())
        self.assertEqual(dict(post.errors), {})
        self.assertEqual(post.errors['title'], [])

    def testErrorsAreNotAccumulated(self):
        post = Post()
        post.is_valid()
        post.is_valid()
        self.assertEqual(len(post.errors['title']), 1)

    def testBlankStringIsNotPresent(self):
        self.assertFalse(Post(title='   ').is_valid())

    def testValidityNeverTouchesNetwork(self):
        Post().is_valid()
        Post(title='Hello').is_valid()
        self.assertEqual(self.transport.calls, [])

    def testErrorsAreStaleUntilRechecked(self):
        post = Post()
        post.is_valid()
        post.title = 'Hello'
        self.assertTrue(post.errors['title'], 'errors only change on is_valid or save')

    def testFullMessages(self):
        post = Post()
        post.is_valid()
        self.assertEqual(post.errors.full_messages(), ["title can't be blank"])

    def testRules(self):
        class Listing(Object):
            fields = ('name', 'code', 'kind', 'price')
            validations = (
                validates_length_of('name', minimum=2, maximum=5),
                validates_format_of('code', r'^[A-Z]{3}$'),
                validates_inclusion_of('kind', ['sale', 'rent']),
                validates_numericality_of('price', only_integer=True),
            )

        listing = Listing(name='a', code='abc', kind='swap', price='ten')
        self.assertFalse(listing.is_valid())
        self.assertEqual(sorted(listing.errors), ['code', 'kind', 'name', 'price'])
        self.assertIn('too short', listing.errors['name'][0])

        listing = Listing(name='abcd', code='ABC', kind='rent', price=10)
        self.assertTrue(listing.is_valid())

        # only presence rejects unset values
        self.assertTrue(Listing().is_valid())

    def testLengthOfValueWithoutLength(self):
        class Pin(Object):
            fields = ('code',)
            validations = (validates_length_of('code', minimum=4),)

        pin = Pin(code=1234)
        self.assertFalse(pin.is_valid())
        self.assertEqual(pin.errors['code'], ['is invalid'])

    def testCustomMessage(self):
        class Note(Object):
            fields = ('text',)
            validations = (validates_presence_of('text', message='is required'),)

        note = Note()
        note.is_valid()
        self.assertEqual(note.errors['text'], ['is required'])

    def testValidateHook(self):
        class Event(Object):
            fields = ('starts', 'ends')

            def validate(self):
                if self.starts and self.ends and self.ends < self.starts:
                    self.errors.add('ends', 'must be after starts')

        self.assertFalse(Event(starts=5, ends=1).is_valid())
        self.assertTrue(Event(starts=1, ends=5).is_valid())


class TestQuery(ParseTestCase):

    def testBuildingDoesNoIO(self):
        q = (Post.Query.where(author='Arrington').limit(5).order('views')
             .page(2).per(10).include_relation('author').near('location', GeoPoint(1, 2)))
        self.assertIsInstance(q, query.Queryset)
        self.assertEqual(self.transport.calls, [])

    def testWhereAll(self):
        self.transport.respond({'results': [
            {'objectId': 'a1', 'title': 'One', 'author': 'Arrington'},
            {'objectId': 'a2', 'title': 'Two', 'author': 'Arrington'},
        ]})
        posts = Post.Query.where(author='Arrington').all()

        self.assertEqual(len(self.transport.calls), 1)
        call = self.transport.calls[0]
        self.assertEqual(call.http_verb, 'GET')
        self.assertEqual(call.path, '/1/classes/Post')
        self.assertEqual(json.loads(call.params['where']), {'author': 'Arrington'})

        self.assertEqual([p.objectId for p in posts], ['a1', 'a2'])
        for post in posts:
            self.assertIsInstance(post, Post)
            self.assertFalse(post.dirty)
            self.assertEqual(post.state, PERSISTED)

    def testDisjointKeysCommute(self):
        a = Post.Query.where(author='Arrington').where(views=2)
        b = Post.Query.where(views=2).where(author='Arrington')
        self.assertEqual(a.params(), b.params())

    def testSameKeyOverwrites(self):
        q = Post.Query.where(author='Arrington').where(author='Swisher')
        self.assertEqual(json.loads(q.params()['where']), {'author': 'Swisher'})

    def testBuilderIsImmutable(self):
        base = Post.Query.where(author='Arrington')
        limited = base.limit(1)
        filtered = base.where(views=3)
        self.assertNotIn('limit', base.params())
        self.assertEqual(json.loads(base.params()['where']), {'author': 'Arrington'})
        self.assertEqual(limited.params()['limit'], 1)
        self.assertEqual(json.loads(filtered.params()['where']),
                         {'author': 'Arrington', 'views': 3})

    def testExistsPredicate(self):
        q = Post.Query.where(body__exists=False)
        self.assertEqual(json.loads(q.params()['where']), {'body': {'$exists': False}})

    def testWhereEncodesValues(self):
        comment_of = Post._from_remote({'objectId': 'p1', 'title': 'Hi'})
        when = datetime.datetime(2014, 10, 4, 12, 0, 0)
        q = Comment.Query.where(post=comment_of)
        self.assertEqual(json.loads(q.params()['where']), {
            'post': {'__type': 'Pointer', 'className': 'Post', 'objectId': 'p1'}})
        q = Post.Query.where(published_at=when)
        self.assertEqual(json.loads(q.params()['where']), {
            'published_at': {'__type': 'Date', 'iso': '2014-10-04T12:00:00.000Z'}})

    def testWhereUnknownField(self):
        self.assertRaises(UnknownFieldError, Post.Query.where, color='red')
        self.assertRaises(UnknownFieldError, Post.Query.order, 'color')
        self.assertEqual(self.transport.calls, [])

    def testNear(self):
        q = Post.Query.near('location', GeoPoint(40.0, -30.0), max_distance=10,
                            units='kilometers')
        self.assertEqual(json.loads(q.params()['where']), {'location': {
            '$nearSphere': {'__type': 'GeoPoint', 'latitude': 40.0, 'longitude': -30.0},
            '$maxDistanceInKilometers': 10}})
        q = Post.Query.near('location', GeoPoint(40.0, -30.0))
        self.assertEqual(list(json.loads(q.params()['where'])['location']), ['$nearSphere'])

    def testNearRejectsUnknownUnits(self):
        self.assertRaises(ValueError, Post.Query.near, 'location',
                          GeoPoint(0, 0), 1, 'furlongs')
        self.assertRaises(TypeError, Post.Query.near, 'location', (0, 0))

    def testWithinBox(self):
        q = Post.Query.within_box('location', GeoPoint(37.7, -122.5), GeoPoint(37.8, -122.3))
        box = json.loads(q.params()['where'])['location']['$within']['$box']
        self.assertEqual([p['latitude'] for p in box], [37.7, 37.8])

    def testOrder(self):
        self.assertEqual(Post.Query.order('views').params()['order'], 'views')
        self.assertEqual(Post.Query.order('views', descending=True).params()['order'], '-views')
        self.assertEqual(Post.Query.order('-views').params()['order'], '-views')
        self.assertEqual(Post.Query.order('views').order('title').params()['order'], 'title')

    def testPagination(self):
        params = Post.Query.page(3).per(10).params()
        self.assertEqual((params['limit'], params['skip']), (10, 20))
        params = Post.Query.page(2).params()
        self.assertEqual((params['limit'], params['skip']), (25, 25))
        params = Post.Query.per(5).params()
        self.assertEqual((params['limit'], params['skip']), (5, 0))
        self.assertRaises(ValueError, Post.Query.page, 0)

    def testIncludeRelation(self):
        q = Comment.Query.include_relation('post').include_relation('post', 'author')
        self.assertEqual(q.params()['include'], 'post,author')

    def testIncludedObjectsAreMaterialized(self):
        self.transport.respond({'results': [{
            'objectId': 'c1', 'text': 'Nice',
            'post': {'__type': 'Object', 'className': 'Post', 'objectId': 'p1',
                     'title': 'Hello'}}]})
        comment = Comment.Query.include_relation('post').first()
        self.assertIsInstance(comment.post, Post)
        self.assertEqual(comment.post.title, 'Hello')
        self.assertFalse(comment.post.dirty)

    def testRowsAreDecoded(self):
        self.transport.respond({'results': [{
            'objectId': 'a1', 'title': 'One',
            'createdAt': '2014-10-04T12:30:15.123Z',
            'location': {'__type': 'GeoPoint', 'latitude': -23.5, 'longitude': -46.6167},
            'published_at': {'__type': 'Date', 'iso': '2014-10-01T00:00:00.000Z'},
            'author': {'__type': 'Pointer', 'className': '_User', 'objectId': 'u1'},
            'undeclared': 'dropped'}]})
        post = Post.Query.first()
        self.assertEqual(post.createdAt, datetime.datetime(2014, 10, 4, 12, 30, 15, 123000))
        self.assertEqual(post.location, GeoPoint(-23.5, -46.6167))
        self.assertEqual(post.published_at, datetime.datetime(2014, 10, 1))
        self.assertEqual(post.author, Pointer('_User', 'u1'))
        self.assertNotIn('undeclared', post.raw_fields())

    def testCount(self):
        self.transport.respond({'results': [], 'count': 7})
        self.assertEqual(Post.Query.where(author='Arrington').skip(3).count(), 7)
        self.assertEqual(len(self.transport.calls), 1)
        params = self.transport.calls[0].params
        self.assertEqual(params['count'], '1')
        self.assertEqual(params['limit'], '0')
        self.assertNotIn('skip', params)

    def testFirst(self):
        self.transport.respond({'results': [{'objectId': 'a1', 'title': 'One'}]})
        self.transport.respond({'results': []})
        self.assertEqual(Post.Query.order('views').first().objectId, 'a1')
        self.assertEqual(self.transport.calls[0].params['limit'], '1')
        self.assertIsNone(Post.Query.where(author='nobody').first())

    def testGet(self):
        self.transport.respond({'results': []})
        self.assertRaises(query.QueryResourceDoesNotExist, Post.Query.get, author='x')
        self.transport.respond({'results': [{'objectId': 'a'}, {'objectId': 'b'}]})
        self.assertRaises(query.QueryResourceMultipleResultsReturned,
                          Post.Query.get, author='x')

    def testNoResultCache(self):
        self.transport.respond({'results': [{'objectId': 'a1'}]})
        self.transport.respond({'results': [{'objectId': 'a1'}, {'objectId': 'a2'}]})
        q = Post.Query.where(author='Arrington')
        self.assertEqual(len(list(q)), 1)
        self.assertEqual(len(list(q)), 2)
        self.assertEqual(len(self.transport.calls), 2)

    def testRemoteError(self):
        self.transport.respond({'code': 102, 'error': 'invalid field name'}, status=400)
        with self.assertRaises(ResourceRequestBadRequest) as ctx:
            Post.Query.all()
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.code, 102)
        self.assertEqual(ctx.exception.message, 'invalid field name')

    def testMalformedJSON(self):
        self.transport.respond(b'<html>oops</html>')
        with self.assertRaises(RemoteRequestError) as ctx:
            Post.Query.all()
        self.assertEqual(ctx.exception.status_code, 200)

    def testTransportFailureIsNotRetried(self):
        self.transport.fail(RemoteRequestError('connection refused'))
        self.assertRaises(RemoteRequestError, Post.Query.count)
        self.assertEqual(len(self.transport.calls), 1)

    def testUnboundModel(self):
        ParseResource.bind(None)
        self.assertRaises(ParseError, Post.Query.all)


class TestPersistence(ParseTestCase):

    def testCreate(self):
        self.transport.respond(CREATED)
        post = Post(title='Hello', author='Arrington')
        self.assertTrue(post.save())

        call = self.transport.calls[0]
        self.assertEqual(call.http_verb, 'POST')
        self.assertEqual(call.path, '/1/classes/Post')
        self.assertEqual(call.json, {'title': 'Hello', 'author': 'Arrington'})
        self.assertEqual(call.headers['X-Parse-Application-Id'], 'app-id')
        self.assertEqual(call.headers['X-Parse-Master-Key'], 'master')

        self.assertEqual(post.objectId, 'abc123')
        self.assertEqual(post.createdAt, datetime.datetime(2014, 10, 4, 12, 30, 15, 123000))
        self.assertEqual(post.updatedAt, post.createdAt)
        self.assertEqual(post.state, PERSISTED)
        self.assertFalse(post.dirty)

        # nothing changed, nothing sent
        self.assertTrue(post.save())
        self.assertEqual(len(self.transport.calls), 1)

    def testScenarioValidateThenSave(self):
        post = Post()
        self.assertFalse(post.is_valid())
        post.title = 'Hello'
        self.assertTrue(post.is_valid())
        self.transport.respond(CREATED)
        self.assertTrue(post.save())
        self.assertIsNotNone(post.objectId)

    def testInvalidSaveSendsNothing(self):
        post = Post(author='Arrington')
        self.assertFalse(post.save())
        self.assertTrue(post.errors['title'])
        self.assertEqual(self.transport.calls, [])
        self.assertEqual(post.state, NEW)

    def testUpdateSendsDirtyFieldsOnly(self):
        post = self.saved_post(author='Arrington', views=1)
        post.views = 2
        self.transport.respond(UPDATED)
        self.assertTrue(post.save())

        call = self.transport.calls[0]
        self.assertEqual(call.http_verb, 'PUT')
        self.assertEqual(call.path, '/1/classes/Post/abc123')
        self.assertEqual(call.json, {'views': 2})
        self.assertEqual(post.updatedAt, datetime.datetime(2014, 10, 5, 8, 0))
        self.assertFalse(post.dirty)

    def testUnsetFieldIsDeletedOnUpdate(self):
        post = self.saved_post(author='Arrington')
        post.author = None
        self.transport.respond(UPDATED)
        post.save()
        self.assertEqual(self.transport.calls[0].json, {'author': {'__op': 'Delete'}})

    def testValuesAreEncoded(self):
        self.transport.respond(CREATED)
        post = Post(title='Hi', location=GeoPoint(10, 20),
                    published_at=datetime.datetime(2014, 1, 2, 3, 4, 5, 678000))
        post.save()
        body = self.transport.calls[0].json
        self.assertEqual(body['location'], {'__type': 'GeoPoint', 'latitude': 10.0, 'longitude': 20.0})
        self.assertEqual(body['published_at'], {'__type': 'Date', 'iso': '2014-01-02T03:04:05.678Z'})

    def testModelAsValueBecomesPointer(self):
        post = self.saved_post()
        self.transport.respond(CREATED)
        Comment(text='Nice', post=post).save()
        self.assertEqual(self.transport.calls[0].json['post'],
                         {'__type': 'Pointer', 'className': 'Post', 'objectId': 'abc123'})

    def testRemoteFailureOnSave(self):
        self.transport.respond({'code': 111, 'error': 'invalid type for key views'}, status=400)
        post = Post(title='Hello', views='many')
        self.assertFalse(post.save())
        self.assertEqual(post.state, NEW)
        self.assertIsNone(post.objectId)
        self.assertTrue(post.dirty)
        self.assertIsInstance(post.remote_error, ResourceRequestBadRequest)
        self.assertEqual(post.remote_error.code, 111)

    def testTransportFailureRestoresState(self):
        post = Post(title='Hello')
        self.transport.fail(RemoteRequestError('connection reset'))
        self.assertFalse(post.save())
        self.assertEqual(post.state, NEW)
        self.assertIsNone(post.remote_error.status_code)

        saved = self.saved_post()
        self.transport.fail(RemoteRequestError('connection reset'))
        self.assertFalse(saved.destroy())
        self.assertEqual(saved.state, PERSISTED)

    def testUnexpectedErrorRestoresState(self):
        post = Post(title='Hello')
        self.transport.fail(RuntimeError('boom'))
        self.assertRaises(RuntimeError, post.save)
        self.assertEqual(post.state, NEW)

        saved = self.saved_post()
        self.transport.fail(RuntimeError('boom'))
        self.assertRaises(RuntimeError, saved.destroy)
        self.assertEqual(saved.state, PERSISTED)

    def testDatesWithoutFraction(self):
        self.transport.respond({'objectId': 'x', 'createdAt': '2014-10-04T12:30:15Z'})
        post = Post(title='Hello')
        self.assertTrue(post.save())
        self.assertEqual(post.state, PERSISTED)
        self.assertEqual(post.createdAt, datetime.datetime(2014, 10, 4, 12, 30, 15))

    def testMalformedDateInResponse(self):
        self.transport.respond({'objectId': 'x', 'createdAt': 'yesterday'})
        post = Post(title='Hello')
        self.assertFalse(post.save())
        self.assertEqual(post.state, NEW)
        self.assertIsNone(post.objectId)
        self.assertTrue(post.dirty)
        self.assertIsInstance(post.remote_error, RemoteRequestError)

    def testMalformedDateInQuery(self):
        self.transport.respond({'results': [{'objectId': 'x', 'updatedAt': 'soon'}]})
        self.assertRaises(RemoteRequestError, Post.Query.all)

    def testDestroy(self):
        post = self.saved_post(author='Arrington')
        self.transport.respond({})
        self.assertTrue(post.destroy())
        call = self.transport.calls[0]
        self.assertEqual((call.http_verb, call.path), ('DELETE', '/1/classes/Post/abc123'))
        self.assertEqual(post.state, DESTROYED)
        self.assertIsNone(post.get('title'))
        self.assertIsNone(post.objectId)
        self.assertEqual(post.raw_fields(), {})
        self.assertRaises(ParseError, post.save)
        self.assertRaises(ParseError, post.destroy)

    def testDestroyFailure(self):
        post = self.saved_post()
        self.transport.respond({'code': 119, 'error': 'forbidden'}, status=403)
        self.assertFalse(post.destroy())
        self.assertEqual(post.state, PERSISTED)
        self.assertEqual(post.title, 'Hello')
        self.assertEqual(post.remote_error.status_code, 403)

    def testDestroyUnsaved(self):
        self.assertRaises(ParseError, Post(title='x').destroy)
        self.assertEqual(self.transport.calls, [])

    def testFind(self):
        self.transport.respond({'objectId': 'abc123', 'title': 'Hello'})
        post = Post.find('abc123')
        self.assertEqual(self.transport.calls[0].path, '/1/classes/Post/abc123')
        self.assertEqual(post.title, 'Hello')
        self.assertEqual(post.state, PERSISTED)

    def testFindMissing(self):
        self.transport.respond({'code': 101, 'error': 'object not found for get'}, status=404)
        with self.assertRaises(NotFoundError) as ctx:
            Post.Query.find('nope')
        self.assertEqual(ctx.exception.status_code, 404)

    def testIncrement(self):
        post = self.saved_post(views=1)
        self.transport.respond({'views': 3, 'updatedAt': '2014-10-05T08:00:00.000Z'})
        post.increment('views', 2)
        self.assertEqual(self.transport.calls[0].json,
                         {'views': {'__op': 'Increment', 'amount': 2}})
        self.assertEqual(post.views, 3)
        self.assertFalse(post.dirty)
        self.assertRaises(UnknownFieldError, post.increment, 'likes')


class TestBatch(ParseTestCase):

    def testSaveAllPartialFailure(self):
        posts = [Post(title='one'), Post(title='two'), Post(title='three')]
        self.transport.respond([
            {'success': {'objectId': 'id1', 'createdAt': '2014-10-04T12:30:15.123Z'}},
            {'error': {'code': 137, 'error': 'duplicate value'}},
            {'success': {'objectId': 'id3', 'createdAt': '2014-10-04T12:30:15.123Z'}},
        ])
        self.assertFalse(Post.save_all(posts))

        self.assertEqual(len(self.transport.calls), 1)
        call = self.transport.calls[0]
        self.assertEqual((call.http_verb, call.path), ('POST', '/1/batch'))
        requests = call.json['requests']
        self.assertEqual([r['method'] for r in requests], ['POST'] * 3)
        self.assertEqual(requests[0]['path'], '/1/classes/Post')
        self.assertEqual(requests[1]['body'], {'title': 'two'})

        self.assertEqual((posts[0].objectId, posts[0].state), ('id1', PERSISTED))
        self.assertEqual((posts[2].objectId, posts[2].state), ('id3', PERSISTED))
        self.assertIsNone(posts[1].objectId)
        self.assertEqual(posts[1].state, NEW)
        self.assertTrue(posts[1].dirty)
        self.assertEqual(posts[1].remote_error.code, 137)

    def testSaveAllMixesCreateAndUpdate(self):
        existing = self.saved_post()
        existing.views = 5
        untouched = self.saved_post()
        fresh = Post(title='new')
        self.transport.respond([{'success': UPDATED}, {'success': CREATED}])
        self.assertTrue(Post.save_all([existing, untouched, fresh]))
        requests = self.transport.calls[0].json['requests']
        self.assertEqual([(r['method'], r['path']) for r in requests],
                         [('PUT', '/1/classes/Post/abc123'), ('POST', '/1/classes/Post')])
        self.assertFalse(existing.dirty)
        self.assertEqual(fresh.objectId, 'abc123')

    def testTransportFailureModifiesNothing(self):
        posts = [Post(title='one'), Post(title='two')]
        self.transport.fail(RemoteRequestError('timed out'))
        self.assertRaises(RemoteRequestError, Post.save_all, posts)
        for post in posts:
            self.assertEqual(post.state, NEW)
            self.assertIsNone(post.objectId)
            self.assertIsNone(post.remote_error)

    def testInvalidInstancesAreSkipped(self):
        posts = [Post(title='one'), Post()]
        self.transport.respond([{'success': CREATED}])
        self.assertFalse(Post.save_all(posts))
        self.assertEqual(len(self.transport.calls[0].json['requests']), 1)
        self.assertEqual(posts[0].state, PERSISTED)
        self.assertTrue(posts[1].errors['title'])

    def testChunksOfFifty(self):
        posts = [Post(title=str(i)) for i in range(51)]
        self.transport.respond([{'success': CREATED}] * 50)
        self.transport.respond([{'success': CREATED}])
        self.assertTrue(Post.save_all(posts))
        self.assertEqual([len(c.json['requests']) for c in self.transport.calls], [50, 1])

    def testDestroyAll(self):
        posts = [self.saved_post(), self.saved_post()]
        self.transport.respond([{'success': {}}, {'error': {'code': 101, 'error': 'not found'}}])
        self.assertFalse(ParseResource.destroy_all(posts))
        requests = self.transport.calls[0].json['requests']
        self.assertEqual([r['method'] for r in requests], ['DELETE', 'DELETE'])
        self.assertNotIn('body', requests[0])
        self.assertEqual(posts[0].state, DESTROYED)
        self.assertEqual(posts[1].state, PERSISTED)
        self.assertEqual(posts[1].remote_error.code, 101)

    def testMalformedResultFailsOnlyItsInstance(self):
        posts = [Post(title='one'), Post(title='two')]
        self.transport.respond([
            {'success': {'objectId': 'id1', 'createdAt': 'yesterday'}},
            {'success': {'objectId': 'id2', 'createdAt': '2014-10-04T12:30:15Z'}},
        ])
        self.assertFalse(Post.save_all(posts))
        self.assertIsNone(posts[0].objectId)
        self.assertEqual(posts[0].state, NEW)
        self.assertIsInstance(posts[0].remote_error, RemoteRequestError)
        self.assertEqual((posts[1].objectId, posts[1].state), ('id2', PERSISTED))

    def testMixedClientsAreRejected(self):
        class Draft(Object):
            fields = ('title',)

        other = FakeTransport()
        Draft.bind(Client(Config('other-app', master_key='master'), other))
        batch = [Post(title='one'), Draft(title='two')]
        self.assertRaises(ParseError, ParseResource.save_all, batch)
        self.assertRaises(ParseError, ParseResource.destroy_all, batch)
        self.assertEqual(self.transport.calls, [])
        self.assertEqual(other.calls, [])

    def testEmptyBatch(self):
        self.assertTrue(Post.save_all([]))
        self.assertTrue(Post.destroy_all(iter([])))
        self.assertEqual(self.transport.calls, [])


def run_tests():
    """Run all tests in the parse_resource package"""
    tests = unittest.TestLoader().loadTestsFromNames([
        'parse_resource.tests', 'parse_resource.test_connection',
        'parse_resource.test_datatypes', 'parse_resource.test_user'])
    t = unittest.TextTestRunner(verbosity=1)
    t.run(tests)


if __name__ == "__main__":
    # command line
    unittest.main()
