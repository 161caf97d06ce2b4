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
import re
from time import time
from urllib.parse import (
    parse_qsl,
    urlsplit,
)
from wsgiref.handlers import format_date_time

from dateutil import parser as date_parser
from requests.auth import AuthBase

from ._common_conversion import (
    _sign_string,
    _str,
)
from ._constants import (
    _MS_DATE_HEADER,
    _SECONDARY_LOCATION_ACCOUNT_SUFFIX,
    _SHARED_KEY_AUTHORIZATION_SCHEME,
    _SHARED_KEY_LITE_AUTHORIZATION_SCHEME,
    _STORAGE_HEADER_PREFIX,
)
from ._error import (
    _ERROR_INVALID_DATE_HEADER,
    _ERROR_STORAGE_MISSING_INFO,
    _validate_not_none,
)
from ._http import HTTPRequest

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r'[ \t]*(?:\r\n|\r|\n)[ \t]*')


class _CanonicalizedString(object):

    '''
    Append-only accumulator for the string to sign. Elements are joined with a
    single newline in the order they were appended. A None element is written
    as an empty line: the position of every element is part of the signature.
    '''

    def __init__(self):
        self._elements = []

    def append(self, element):
        self._elements.append('' if element is None else element)

    def finalize(self):
        return '\n'.join(self._elements)


def _get_canonicalized_headers(request):
    '''
    Returns one 'name:value' element per x-ms- header, with lower-cased names
    in sorted order. Repeated headers are folded with ',' and line breaks in
    values collapse to a single space.
    '''
    header_names = set()
    for name, _ in request.headers:
        name = name.lower()
        if name.startswith(_STORAGE_HEADER_PREFIX):
            header_names.add(name)

    elements = []
    for name in sorted(header_names):
        value = request.get_header(name).lstrip()
        elements.append(name + ':' + _LINE_BREAK.sub(' ', value))
    return elements


def _get_canonicalized_resource(request, account_name, lite_format=False):
    '''
    Returns '/<account><path>' followed by the query parameters. The full
    format adds a 'name:value1,value2' line per parameter; the lite format,
    also used by the table service, only carries '?comp=<value>'.
    '''
    path = request.path.split('?')[0] or '/'

    # /account-secondary/... addresses the same resource as /account/...
    secondary_prefix = '/' + account_name + _SECONDARY_LOCATION_ACCOUNT_SUFFIX
    if path.lower().startswith(secondary_prefix.lower()):
        path = path[:len(account_name) + 1] + path[len(secondary_prefix):]

    resource = '/' + account_name + path

    if lite_format:
        for name, value in request.query:
            if name.lower() == 'comp' and value is not None:
                return resource + '?comp=' + _str(value)
        return resource

    query_params = {}
    for name, value in request.query:
        if value is not None:
            query_params.setdefault(name.lower(), []).append(_str(value))

    for name in sorted(query_params):
        resource += '\n' + name + ':' + ','.join(sorted(query_params[name]))
    return resource


def _get_date_header_value(request, allow_ms_date):
    '''
    Returns the value for the Date line. When x-ms-date is sent it already
    travels with the custom headers, so the Date line is left empty unless
    the scheme signs x-ms-date in that position.
    '''
    ms_date = request.get_header(_MS_DATE_HEADER)
    if ms_date:
        _validate_date_header(_MS_DATE_HEADER, ms_date)
        return ms_date if allow_ms_date else None

    date = request.get_header('Date')
    if date:
        _validate_date_header('Date', date)
    return date


def _validate_date_header(name, value):
    try:
        date_parser.parse(value)
    except (ValueError, OverflowError):
        raise ValueError(_ERROR_INVALID_DATE_HEADER.format(name, value))


def _get_content_length(request):
    length = request.get_header('Content-Length')
    if length is None:
        length = str(len(request.body))
    # Since version 2015-02-21 a zero length is signed as an empty string.
    return None if length == '0' else length


class _SharedKeyCanonicalizer(object):

    '''
    Builds the string to sign for the SharedKey scheme of the blob, queue and
    file services.
    '''

    authorization_scheme = _SHARED_KEY_AUTHORIZATION_SCHEME

    def canonicalize(self, request, account_name):
        _validate_not_none('request', request)

        canonicalized = _CanonicalizedString()
        canonicalized.append(request.method)

        if request.body is not None:
            canonicalized.append(request.get_header('Content-Encoding'))
            canonicalized.append(request.get_header('Content-Language'))
            canonicalized.append(_get_content_length(request))
            canonicalized.append(request.get_header('Content-MD5'))
            canonicalized.append(request.get_header('Content-Type'))
        else:
            for _ in range(5):
                canonicalized.append(None)

        canonicalized.append(_get_date_header_value(request, allow_ms_date=False))

        for name in ['If-Modified-Since', 'If-Match', 'If-None-Match',
                     'If-Unmodified-Since', 'Range']:
            canonicalized.append(request.get_header(name))

        for element in _get_canonicalized_headers(request):
            canonicalized.append(element)

        canonicalized.append(_get_canonicalized_resource(request, account_name))
        return canonicalized.finalize()


class _SharedKeyLiteCanonicalizer(object):

    '''
    Builds the string to sign for the SharedKeyLite scheme of the blob and
    queue services.
    '''

    authorization_scheme = _SHARED_KEY_LITE_AUTHORIZATION_SCHEME

    def canonicalize(self, request, account_name):
        _validate_not_none('request', request)

        canonicalized = _CanonicalizedString()
        canonicalized.append(request.method)

        # Empty values are allowed, but both lines are always present.
        if request.body is not None:
            canonicalized.append(request.get_header('Content-MD5'))
            canonicalized.append(request.get_header('Content-Type'))
        else:
            canonicalized.append(None)
            canonicalized.append(None)

        canonicalized.append(_get_date_header_value(request, allow_ms_date=False))

        for element in _get_canonicalized_headers(request):
            canonicalized.append(element)

        canonicalized.append(_get_canonicalized_resource(request, account_name, lite_format=True))
        return canonicalized.finalize()


class _TableSharedKeyCanonicalizer(object):

    '''
    Builds the string to sign for the SharedKey scheme of the table service.
    Custom headers are not signed; x-ms-date takes the place of Date.
    '''

    authorization_scheme = _SHARED_KEY_AUTHORIZATION_SCHEME

    def canonicalize(self, request, account_name):
        _validate_not_none('request', request)

        canonicalized = _CanonicalizedString()
        canonicalized.append(request.method)

        if request.body is not None:
            canonicalized.append(request.get_header('Content-MD5'))
            canonicalized.append(request.get_header('Content-Type'))
        else:
            canonicalized.append(None)
            canonicalized.append(None)

        canonicalized.append(_get_date_header_value(request, allow_ms_date=True))
        canonicalized.append(_get_canonicalized_resource(request, account_name, lite_format=True))
        return canonicalized.finalize()


class _TableSharedKeyLiteCanonicalizer(object):

    '''
    Builds the string to sign for the SharedKeyLite scheme of the table
    service: the date and the resource only.
    '''

    authorization_scheme = _SHARED_KEY_LITE_AUTHORIZATION_SCHEME

    def canonicalize(self, request, account_name):
        _validate_not_none('request', request)

        canonicalized = _CanonicalizedString()
        canonicalized.append(_get_date_header_value(request, allow_ms_date=True))
        canonicalized.append(_get_canonicalized_resource(request, account_name, lite_format=True))
        return canonicalized.finalize()


# The canonicalizers hold no state; one instance of each is shared.
_SHARED_KEY_CANONICALIZER = _SharedKeyCanonicalizer()
_SHARED_KEY_LITE_CANONICALIZER = _SharedKeyLiteCanonicalizer()
_TABLE_SHARED_KEY_CANONICALIZER = _TableSharedKeyCanonicalizer()
_TABLE_SHARED_KEY_LITE_CANONICALIZER = _TableSharedKeyLiteCanonicalizer()


class _StorageSharedKeyAuthentication(object):

    '''
    Signs requests with the account key. Subclasses pick the canonicalizer,
    which also decides the scheme written to the Authorization header.
    '''

    canonicalizer = _SHARED_KEY_CANONICALIZER

    def __init__(self, account_name, account_key):
        '''
        :param str account_name:
            The storage account name.
        :param str account_key:
            The base64 encoded storage account key.
        '''
        _validate_not_none('account_name', account_name)
        _validate_not_none('account_key', account_key)

        self.account_name = account_name
        self.account_key = account_key

    def sign_request(self, request):
        string_to_sign = self.canonicalizer.canonicalize(request, self.account_name)
        self._add_authorization_header(request, string_to_sign)

    def _add_authorization_header(self, request, string_to_sign):
        logger.debug("String to sign (%s)=%r", self.canonicalizer.authorization_scheme, string_to_sign)

        signature = _sign_string(self.account_key, string_to_sign)
        auth_string = self.canonicalizer.authorization_scheme + ' ' + self.account_name + ':' + signature

        request.headers = [(name, value) for name, value in request.headers
                           if name.lower() != 'authorization']
        request.headers.append(('Authorization', auth_string))


class _StorageSharedKeyLiteAuthentication(_StorageSharedKeyAuthentication):
    canonicalizer = _SHARED_KEY_LITE_CANONICALIZER


class _StorageTableSharedKeyAuthentication(_StorageSharedKeyAuthentication):
    canonicalizer = _TABLE_SHARED_KEY_CANONICALIZER


class _StorageTableSharedKeyLiteAuthentication(_StorageSharedKeyAuthentication):
    canonicalizer = _TABLE_SHARED_KEY_LITE_CANONICALIZER


def _to_http_request(prepared_request):
    '''
    Copies the parts of a requests.PreparedRequest that take part in signing.
    '''
    url = urlsplit(prepared_request.url)

    request = HTTPRequest()
    request.method = prepared_request.method
    request.host = url.netloc
    request.protocol_override = url.scheme
    request.path = url.path or '/'
    request.query = parse_qsl(url.query, keep_blank_values=True)
    request.headers = list(prepared_request.headers.items())

    body = prepared_request.body
    if isinstance(body, str):
        body = body.encode('utf-8')
    elif body is not None and not isinstance(body, bytes):
        # streamed content; only its presence matters for signing
        body = b''
    request.body = body
    return request


class StorageTableAuth(AuthBase):

    '''
    Authenticates table service requests sent through requests with the
    account key.

        session = requests.Session()
        session.auth = StorageTableAuth('myaccount', account_key)

    :param str account_name:
        The storage account name.
    :param str account_key:
        The base64 encoded storage account key.
    :param bool use_lite:
        Sign with SharedKeyLite instead of SharedKey.
    '''

    def __init__(self, account_name, account_key, use_lite=False):
        if not account_name or not account_key:
            raise ValueError(_ERROR_STORAGE_MISSING_INFO)

        if use_lite:
            self.authentication = _StorageTableSharedKeyLiteAuthentication(account_name, account_key)
        else:
            self.authentication = _StorageTableSharedKeyAuthentication(account_name, account_key)

    def __call__(self, r):
        if _MS_DATE_HEADER not in r.headers and 'Date' not in r.headers:
            r.headers[_MS_DATE_HEADER] = format_date_time(time())

        request = _to_http_request(r)
        self.authentication.sign_request(request)

        r.headers['Authorization'] = request.get_header('Authorization')
        return r
