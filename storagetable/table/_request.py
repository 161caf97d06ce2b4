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
import logging
from urllib.parse import (
    quote as url_quote,
    urlsplit,
)

from .._common_conversion import _str
from .._constants import (
    _DATA_SERVICE_VERSION,
    _JSON_CONTENT_TYPE,
    _MAX_DATA_SERVICE_VERSION,
)
from .._error import (
    _validate_not_none,
)
from .._http import HTTPRequest
from .._serialization import (
    _get_request_body,
    _update_request,
)
from ._error import (
    _validate_entity,
)
from ._serialization import (
    _CONDITIONAL_OPERATIONS,
    _BODY_OPERATIONS,
    _MERGE_OPERATIONS,
    _TUNNELED_MERGE_OPERATIONS,
    _assert_no_encryption_policy_or_strict_mode,
    _convert_batch_to_multipart,
    _convert_operation_to_json,
    _get_entity_key,
    _get_http_method,
    _get_operation_path,
    _get_prefer_value,
)
from .models import (
    TableOperation,
    TableOperationType,
    TableRequestOptions,
)

logger = logging.getLogger(__name__)


def _insert_entity(entity, echo_content=False):
    '''
    Constructs an insert entity operation.
    '''
    _validate_entity(entity)

    return TableOperation(TableOperationType.INSERT,
                          _get_entity_key(entity, 'PartitionKey'),
                          _get_entity_key(entity, 'RowKey'),
                          entity, echo_content=echo_content)


def _update_entity(entity, if_match='*'):
    '''
    Constructs an update (replace) entity operation.
    '''
    _validate_entity(entity)

    return TableOperation(TableOperationType.REPLACE,
                          _get_entity_key(entity, 'PartitionKey'),
                          _get_entity_key(entity, 'RowKey'),
                          entity, etag=if_match)


def _merge_entity(entity, if_match='*'):
    '''
    Constructs a merge entity operation.
    '''
    _validate_entity(entity)

    return TableOperation(TableOperationType.MERGE,
                          _get_entity_key(entity, 'PartitionKey'),
                          _get_entity_key(entity, 'RowKey'),
                          entity, etag=if_match)


def _delete_entity(partition_key, row_key, if_match='*'):
    '''
    Constructs a delete entity operation.
    '''
    _validate_not_none('partition_key', partition_key)
    _validate_not_none('row_key', row_key)

    return TableOperation(TableOperationType.DELETE, partition_key, row_key,
                          etag=if_match)


def _insert_or_replace_entity(entity):
    '''
    Constructs an insert or replace entity operation.
    '''
    _validate_entity(entity)

    return TableOperation(TableOperationType.INSERT_OR_REPLACE,
                          _get_entity_key(entity, 'PartitionKey'),
                          _get_entity_key(entity, 'RowKey'),
                          entity)


def _insert_or_merge_entity(entity):
    '''
    Constructs an insert or merge entity operation.
    '''
    _validate_entity(entity)

    return TableOperation(TableOperationType.INSERT_OR_MERGE,
                          _get_entity_key(entity, 'PartitionKey'),
                          _get_entity_key(entity, 'RowKey'),
                          entity)


def _get_entity(partition_key, row_key):
    '''
    Constructs a retrieve entity operation.
    '''
    _validate_not_none('partition_key', partition_key)
    _validate_not_none('row_key', row_key)

    return TableOperation(TableOperationType.RETRIEVE, partition_key, row_key)


def _rotate_entity_encryption_key(entity, if_match='*'):
    '''
    Constructs an operation that re-wraps the content key of an encrypted
    entity without touching its encrypted properties.
    '''
    _validate_entity(entity)

    return TableOperation(TableOperationType.ROTATE_ENCRYPTION_KEY,
                          _get_entity_key(entity, 'PartitionKey'),
                          _get_entity_key(entity, 'RowKey'),
                          entity, etag=if_match)


def _build_request_core(uri, method, path):
    url = urlsplit(uri)

    request = HTTPRequest()
    request.method = method
    request.host = url.netloc
    request.protocol_override = url.scheme or None
    # Signed and sent in escaped form; quotes, parentheses and commas of the
    # entity key syntax stay literal.
    request.path = url_quote(url.path.rstrip('/') + path, '/()$=\',')
    request.headers = [
        ('Accept-Charset', 'UTF-8'),
        ('MaxDataServiceVersion', _MAX_DATA_SERVICE_VERSION),
    ]
    return request


def _build_table_query_request(uri, table_name, options=None, query=None):
    '''
    Builds a GET request against the table. The query pairs ($filter, $top,
    $select, continuation tokens) are passed through as given.
    '''
    _validate_not_none('table_name', table_name)
    options = options or TableRequestOptions()

    request = _build_request_core(uri, 'GET', '/' + _str(table_name) + '()')
    request.query = list(query or [])
    request.headers.append(('Accept', options.payload_format))
    logger.debug("Payload format: %s", options.payload_format)

    _update_request(request)
    return request


def _build_table_operation_request(uri, table_name, operation, options=None):
    '''
    Builds the request for a single table operation.

    :param str uri:
        The table service endpoint, for example
        'https://myaccount.table.core.windows.net'.
    :param str table_name:
        The table the operation targets.
    :param TableOperation operation:
        The operation to send.
    :param TableRequestOptions options:
        Payload format and encryption settings. Defaults are used if None.
    :return: The request. Its body is None for operations that carry no
        content (delete and retrieve), otherwise the JSON entity as bytes with
        a matching Content-Length header.
    :rtype: HTTPRequest
    '''
    _validate_not_none('operation', operation)
    _validate_not_none('table_name', table_name)
    options = options or TableRequestOptions()
    operation_type = operation.operation_type

    request = _build_request_core(uri, _get_http_method(operation),
                                  _get_operation_path(table_name, operation))
    request.headers.append(('Accept', options.payload_format))
    logger.debug("Payload format: %s", options.payload_format)
    request.headers.append(('DataServiceVersion', _DATA_SERVICE_VERSION))

    if operation_type in _MERGE_OPERATIONS:
        _assert_no_encryption_policy_or_strict_mode(options)

    # post tunnelling
    if operation_type in _TUNNELED_MERGE_OPERATIONS:
        request.headers.append(('X-HTTP-Method', 'MERGE'))

    if operation_type in _CONDITIONAL_OPERATIONS and operation.etag is not None:
        request.headers.append(('If-Match', _str(operation.etag)))

    if operation_type == TableOperationType.INSERT:
        request.headers.append(('Prefer', _get_prefer_value(operation)))

    if operation_type in _BODY_OPERATIONS:
        request.body = _get_request_body(_convert_operation_to_json(operation, options))
        request.headers.append(('Content-Type', _JSON_CONTENT_TYPE))

    _update_request(request)
    return request


def _build_batch_request(uri, table_name, operations, options=None):
    '''
    Builds the $batch request for the operations.

    :param str uri:
        The table service endpoint.
    :param str table_name:
        The table every operation targets.
    :param operations:
        The operations, in order. A :class:`~storagetable.table.TableBatch`
        can be passed directly.
    :type operations: list(TableOperation) or TableBatch
    :param TableRequestOptions options:
        Payload format and encryption settings. Defaults are used if None.
    :rtype: HTTPRequest
    '''
    _validate_not_none('operations', operations)
    _validate_not_none('table_name', table_name)
    options = options or TableRequestOptions()

    body, content_type = _convert_batch_to_multipart(uri, table_name, list(operations), options)

    request = _build_request_core(uri, 'POST', '/$batch')
    request.headers.append(('DataServiceVersion', _DATA_SERVICE_VERSION))
    request.headers.append(('Content-Type', content_type))
    request.body = body

    _update_request(request)
    return request
