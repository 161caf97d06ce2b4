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
from azure.common import (
    AzureException,
)
from ._error import (
    _ERROR_ATTRIBUTE_MISSING,
)


class AzureBatchValidationError(AzureException):

    '''Indicates that a batch operation cannot proceed due to invalid input'''


class AzureEncryptionPolicyError(AzureException):

    '''
    Indicates that the request options cannot be combined with the operation,
    for example an encryption policy on a merge. Raised before any part of the
    request is written.
    '''


class Entity(dict):
    ''' Entity class. The attributes of entity will be created dynamically. '''

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(_ERROR_ATTRIBUTE_MISSING.format('Entity', name))

    __setattr__ = dict.__setitem__

    def __delattr__(self, name):
        try:
            del self[name]
        except KeyError:
            raise AttributeError(_ERROR_ATTRIBUTE_MISSING.format('Entity', name))

    def __dir__(self):
        return dir({}) + list(self.keys())


class EntityProperty(object):
    ''' Entity property. contains type and value.  '''

    def __init__(self, type=None, value=None):
        self.type = type
        self.value = value


class TablePayloadFormat(object):
    '''
    Specifies the accepted content type of the response payload. More information
    can be found here: https://msdn.microsoft.com/en-us/library/azure/dn535600.aspx
    '''

    '''Returns no type information for the entity properties.'''
    JSON_NO_METADATA = 'application/json;odata=nometadata'

    '''Returns minimal type information for the entity properties.'''
    JSON_MINIMAL_METADATA = 'application/json;odata=minimalmetadata'

    '''Returns minimal type information for the entity properties plus some extra odata properties.'''
    JSON_FULL_METADATA = 'application/json;odata=fullmetadata'


class EdmType(object):
    BINARY = 'Edm.Binary'
    INT64 = 'Edm.Int64'
    GUID = 'Edm.Guid'
    DATETIME = 'Edm.DateTime'
    STRING = 'Edm.String'
    INT32 = 'Edm.Int32'
    DOUBLE = 'Edm.Double'
    BOOLEAN = 'Edm.Boolean'


class TableOperationType(object):
    '''
    The kinds of single-entity operations that can be sent alone or inside a
    batch.
    '''
    INSERT = 'Insert'
    DELETE = 'Delete'
    REPLACE = 'Replace'
    MERGE = 'Merge'
    INSERT_OR_MERGE = 'InsertOrMerge'
    INSERT_OR_REPLACE = 'InsertOrReplace'
    RETRIEVE = 'Retrieve'
    ROTATE_ENCRYPTION_KEY = 'RotateEncryptionKey'


class TableOperation(object):

    '''
    A single operation on one entity. Use the module level factories in
    :mod:`storagetable.table._request` or :class:`~storagetable.table.TableBatch`
    rather than constructing one directly.

    :ivar str operation_type:
        One of :class:`TableOperationType`.
    :ivar str partition_key:
        PartitionKey of the target entity.
    :ivar str row_key:
        RowKey of the target entity.
    :ivar entity:
        The entity to write. None for delete and retrieve.
    :vartype entity: dict, :class:`Entity` or an object whose public
        attributes are the entity properties
    :ivar str etag:
        The value sent as If-Match for conditional operations. None means
        the operation is unconditional.
    :ivar bool echo_content:
        Insert only. Whether the service should return the inserted entity.
    '''

    def __init__(self, operation_type, partition_key=None, row_key=None,
                 entity=None, etag=None, echo_content=False):
        self.operation_type = operation_type
        self.partition_key = partition_key
        self.row_key = row_key
        self.entity = entity
        self.etag = etag
        self.echo_content = echo_content


class TableRequestOptions(object):

    '''
    Per-request settings used when building table requests.

    :ivar str payload_format:
        One of :class:`TablePayloadFormat`. Selects the Accept header.
        Defaults to minimal metadata.
    :ivar encryption_policy:
        Client-side encryption capability. Must implement the following methods:
        encrypt_entity(properties, partition_key, row_key, resolver)--returns the
        property dict with the selected properties encrypted.
        rotate_encryption_key(entity, resolver)--returns the re-wrapped key
        details of an encrypted entity. Only needed for key rotation.
    :ivar bool require_encryption:
        If set, every entity written must go through the encryption policy.
    :ivar function(partition_key, row_key, property_name) encryption_resolver:
        Passed through to the encryption policy to choose which properties
        are encrypted.
    '''

    def __init__(self, payload_format=TablePayloadFormat.JSON_MINIMAL_METADATA,
                 encryption_policy=None, require_encryption=False,
                 encryption_resolver=None):
        self.payload_format = payload_format
        self.encryption_policy = encryption_policy
        self.require_encryption = require_encryption
        self.encryption_resolver = encryption_resolver
