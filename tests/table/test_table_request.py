#-------------------------------------------------------------------------
# Copyright (c) Microsoft.  All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#--------------------------------------------------------------------------
import json
import unittest

from storagetable._auth import _TABLE_SHARED_KEY_CANONICALIZER
from storagetable._constants import X_MS_VERSION
from storagetable._serialization import _add_date_header
from storagetable.table import (
    AzureEncryptionPolicyError,
    EdmType,
    EntityProperty,
    TableBatch,
    TablePayloadFormat,
    TableRequestOptions,
)
from storagetable.table._request import (
    _build_batch_request,
    _build_table_operation_request,
    _build_table_query_request,
    _delete_entity,
    _get_entity,
    _insert_entity,
    _insert_or_merge_entity,
    _insert_or_replace_entity,
    _merge_entity,
    _rotate_entity_encryption_key,
    _update_entity,
)
from tests.testcase import (
    FakeEncryptionPolicy,
    StorageTestCase,
)

#------------------------------------------------------------------------------
TEST_TABLE_NAME = 'mytable'
#------------------------------------------------------------------------------


class StorageTableRequestTest(StorageTestCase):

    def setUp(self):
        super(StorageTableRequestTest, self).setUp()
        self.uri = self.get_table_endpoint()

    #--Helpers-----------------------------------------------------------------
    def _create_entity(self, partition='001', row='batch_insert'):
        return {'PartitionKey': partition,
                'RowKey': row,
                'age': 39,
                'sex': 'male',
                'count': EntityProperty(EdmType.INT64, 1234567890123)}

    def _build(self, operation, options=None):
        return _build_table_operation_request(self.uri, TEST_TABLE_NAME, operation, options)

    def _assert_core_headers(self, request):
        self.assertEqual(request.host, self.settings.STORAGE_ACCOUNT_NAME + '.table.core.windows.net')
        self.assertEqual(request.protocol_override, 'https')
        self.assertEqual(request.get_header('Accept-Charset'), 'UTF-8')
        self.assertEqual(request.get_header('MaxDataServiceVersion'), '3.0;NetFx')
        self.assertEqual(request.get_header('x-ms-version'), X_MS_VERSION)
        self.assertIsNotNone(request.get_header('User-Agent'))

    #--Test cases for single operations --------------------------------------
    def test_insert_entity(self):
        request = self._build(_insert_entity(self._create_entity()))

        self._assert_core_headers(request)
        self.assertEqual(request.method, 'POST')
        self.assertEqual(request.path, '/mytable()')
        self.assertEqual(request.get_header('Accept'), TablePayloadFormat.JSON_MINIMAL_METADATA)
        self.assertEqual(request.get_header('DataServiceVersion'), '3.0;')
        self.assertEqual(request.get_header('Prefer'), 'return-no-content')
        self.assertEqual(request.get_header('Content-Type'), 'application/json')
        self.assertEqual(request.get_header('Content-Length'), str(len(request.body)))
        self.assertFalse(request.has_header('If-Match'))
        self.assertFalse(request.has_header('X-HTTP-Method'))
        self.assertEqual(json.loads(request.body.decode('utf-8')), {
            'PartitionKey': '001',
            'RowKey': 'batch_insert',
            'age': 39,
            'sex': 'male',
            'count': '1234567890123',
            'count@odata.type': 'Edm.Int64',
        })

    def test_insert_entity_echo_content(self):
        request = self._build(_insert_entity(self._create_entity(), echo_content=True))

        self.assertEqual(request.get_header('Prefer'), 'return-content')

    def test_update_entity(self):
        request = self._build(_update_entity(self._create_entity(), if_match='W/"etag"'))

        self.assertEqual(request.method, 'PUT')
        self.assertEqual(request.path, "/mytable(PartitionKey='001',RowKey='batch_insert')")
        self.assertEqual(request.get_header('If-Match'), 'W/"etag"')
        self.assertFalse(request.has_header('Prefer'))
        body = json.loads(request.body.decode('utf-8'))
        self.assertNotIn('PartitionKey', body)
        self.assertEqual(body['age'], 39)

    def test_merge_entity(self):
        request = self._build(_merge_entity(self._create_entity()))

        self.assertEqual(request.method, 'POST')
        self.assertEqual(request.get_header('X-HTTP-Method'), 'MERGE')
        self.assertEqual(request.get_header('If-Match'), '*')
        self.assertEqual(request.get_header('Content-Type'), 'application/json')

    def test_insert_or_merge_entity(self):
        request = self._build(_insert_or_merge_entity(self._create_entity()))

        self.assertEqual(request.method, 'POST')
        self.assertEqual(request.get_header('X-HTTP-Method'), 'MERGE')
        self.assertFalse(request.has_header('If-Match'))
        self.assertIsNotNone(request.body)

    def test_insert_or_replace_entity(self):
        request = self._build(_insert_or_replace_entity(self._create_entity()))

        self.assertEqual(request.method, 'PUT')
        self.assertFalse(request.has_header('X-HTTP-Method'))
        self.assertFalse(request.has_header('If-Match'))
        self.assertIsNotNone(request.body)

    def test_delete_entity(self):
        request = self._build(_delete_entity("O'Brien", '1'))

        self._assert_core_headers(request)
        self.assertEqual(request.method, 'DELETE')
        self.assertEqual(request.path, "/mytable(PartitionKey='O''Brien',RowKey='1')")
        self.assertEqual(request.get_header('If-Match'), '*')
        self.assertIsNone(request.body)
        self.assertFalse(request.has_header('Content-Type'))
        self.assertFalse(request.has_header('Content-Length'))

    def test_delete_entity_unconditional(self):
        request = self._build(_delete_entity('001', '1', if_match=None))

        self.assertFalse(request.has_header('If-Match'))

    def test_get_entity(self):
        request = self._build(_get_entity('001', '1'))

        self.assertEqual(request.method, 'GET')
        self.assertEqual(request.path, "/mytable(PartitionKey='001',RowKey='1')")
        self.assertIsNone(request.body)
        self.assertFalse(request.has_header('If-Match'))

    def test_payload_format(self):
        options = TableRequestOptions(payload_format=TablePayloadFormat.JSON_FULL_METADATA)

        request = self._build(_get_entity('001', '1'), options)

        self.assertEqual(request.get_header('Accept'), 'application/json;odata=fullmetadata')

    def test_uri_with_path(self):
        request = _build_table_operation_request('http://127.0.0.1:10002/devstoreaccount1/',
                                                 TEST_TABLE_NAME, _get_entity('001', '1'))

        self.assertEqual(request.host, '127.0.0.1:10002')
        self.assertEqual(request.protocol_override, 'http')
        self.assertEqual(request.path, "/devstoreaccount1/mytable(PartitionKey='001',RowKey='1')")

    def test_merge_with_encryption_policy_fails(self):
        options = TableRequestOptions(encryption_policy=FakeEncryptionPolicy())

        with self.assertRaises(AzureEncryptionPolicyError):
            self._build(_merge_entity(self._create_entity()), options)

        with self.assertRaises(AzureEncryptionPolicyError):
            self._build(_insert_or_merge_entity(self._create_entity()), options)

    def test_insert_with_encryption_policy(self):
        policy = FakeEncryptionPolicy()
        options = TableRequestOptions(encryption_policy=policy)

        request = self._build(_insert_entity({'PartitionKey': '001', 'RowKey': '1', 'secret': 'value'}),
                              options)

        self.assertEqual(len(policy.encrypt_calls), 1)
        self.assertEqual(json.loads(request.body.decode('utf-8'))['secret'], 'encrypted:value')

    def test_rotate_entity_encryption_key(self):
        policy = FakeEncryptionPolicy()
        options = TableRequestOptions(encryption_policy=policy)
        entity = {'PartitionKey': '001', 'RowKey': '1', 'secret': 'encrypted',
                  '_ClientEncryptionMetadata2': 'old-key-details'}

        request = self._build(_rotate_entity_encryption_key(entity, if_match='W/"etag"'), options)

        self.assertEqual(request.method, 'POST')
        self.assertEqual(request.get_header('X-HTTP-Method'), 'MERGE')
        self.assertEqual(request.get_header('If-Match'), 'W/"etag"')
        self.assertEqual(json.loads(request.body.decode('utf-8')),
                         {'_ClientEncryptionMetadata2': 'wrapped-key-details'})
        self.assertEqual(policy.encrypt_calls, [])
        self.assertEqual(len(policy.rotate_calls), 1)

    def test_rotate_entity_encryption_key_without_policy_fails(self):
        with self.assertRaises(AzureEncryptionPolicyError):
            self._build(_rotate_entity_encryption_key({'PartitionKey': '001', 'RowKey': '1'}))

    def test_invalid_entity_fails(self):
        with self.assertRaises(TypeError):
            _insert_entity(None)

        with self.assertRaises(TypeError):
            _merge_entity('entity')

    def test_missing_keys_fail(self):
        with self.assertRaises(ValueError):
            _delete_entity(None, '1')

        with self.assertRaises(ValueError):
            _get_entity('001', None)

    def test_none_operation_fails(self):
        with self.assertRaises(ValueError):
            self._build(None)

    def test_signed_insert(self):
        request = self._build(_insert_entity(self._create_entity()))
        _add_date_header(request)

        string_to_sign = _TABLE_SHARED_KEY_CANONICALIZER.canonicalize(
            request, self.settings.STORAGE_ACCOUNT_NAME)

        self.assertEqual(string_to_sign,
                         'POST\n\napplication/json\n' + request.get_header('x-ms-date') +
                         '\n/storagename/mytable()')

    def test_entity_path_is_escaped_before_signing(self):
        request = self._build(_get_entity('a b', 'ré'))
        request.headers.append(('x-ms-date', self.settings.REQUEST_DATE))

        string_to_sign = _TABLE_SHARED_KEY_CANONICALIZER.canonicalize(
            request, self.settings.STORAGE_ACCOUNT_NAME)

        self.assertEqual(request.path, "/mytable(PartitionKey='a%20b',RowKey='r%C3%A9')")
        self.assertEqual(string_to_sign,
                         'GET\n\n\n' + self.settings.REQUEST_DATE +
                         "\n/storagename/mytable(PartitionKey='a%20b',RowKey='r%C3%A9')")

    def test_body_length_and_version_headers(self):
        request = self._build(_insert_or_replace_entity(self._create_entity()))

        self.assertEqual(request.get_header_values('Content-Length'), [str(len(request.body))])
        self.assertEqual(request.get_header_values('x-ms-version'), [X_MS_VERSION])

    #--Test cases for queries ------------------------------------------------
    def test_query_request(self):
        query = [('$filter', "PartitionKey eq '001'"), ('$top', '10')]

        request = _build_table_query_request(self.uri, TEST_TABLE_NAME, query=query)

        self._assert_core_headers(request)
        self.assertEqual(request.method, 'GET')
        self.assertEqual(request.path, '/mytable()')
        self.assertEqual(request.query, query)
        self.assertEqual(request.get_header('Accept'), TablePayloadFormat.JSON_MINIMAL_METADATA)
        self.assertIsNone(request.body)

    #--Test cases for batch requests -----------------------------------------
    def test_batch_request(self):
        batch = TableBatch()
        batch.insert_entity(self._create_entity('001', '1'))
        batch.delete_entity('001', '2')

        request = _build_batch_request(self.uri, TEST_TABLE_NAME, batch)

        self._assert_core_headers(request)
        self.assertEqual(request.method, 'POST')
        self.assertEqual(request.path, '/$batch')
        self.assertEqual(request.get_header('DataServiceVersion'), '3.0;')
        self.assertTrue(request.get_header('Content-Type').startswith('multipart/mixed; boundary=batch_'))
        self.assertEqual(request.get_header('Content-Length'), str(len(request.body)))

        boundary = request.get_header('Content-Type').split('boundary=')[1]
        self.assertTrue(request.body.decode('utf-8').startswith('--' + boundary + '\r\n'))


#------------------------------------------------------------------------------
if __name__ == '__main__':
    unittest.main()
