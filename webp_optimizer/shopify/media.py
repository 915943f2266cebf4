"""
商品メディア・ファイル関連の mutation。
いずれも HTTP 200 + userErrors を返し得るため、結果は MutationResult で返す。
"""
from __future__ import annotations

import logging
from typing import Optional

import requests

from webp_optimizer.errors import UploadError
from webp_optimizer.shopify import models
from webp_optimizer.shopify.api_client import GraphQLClient
from webp_optimizer.util import http

logger = logging.getLogger(__name__)

STAGED_UPLOADS_CREATE = """
mutation stagedUploadsCreate($input: [StagedUploadInput!]!) {
  stagedUploadsCreate(input: $input) {
    stagedTargets {
      url
      resourceUrl
      parameters {
        name
        value
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""

FILE_CREATE = """
mutation fileCreate($files: [FileCreateInput!]!) {
  fileCreate(files: $files) {
    files {
      id
      fileStatus
      ... on GenericFile {
        url
      }
      ... on MediaImage {
        image {
          url
        }
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""

FILE_NODE_QUERY = """
query fileNode($id: ID!) {
  node(id: $id) {
    ... on GenericFile {
      id
      fileStatus
      url
    }
  }
}
"""

PRODUCT_CREATE_MEDIA = """
mutation productCreateMedia($media: [CreateMediaInput!]!, $productId: ID!) {
  productCreateMedia(media: $media, productId: $productId) {
    media {
      ... on MediaImage {
        id
        image {
          url
        }
      }
    }
    mediaUserErrors {
      field
      message
    }
  }
}
"""

PRODUCT_DELETE_MEDIA = """
mutation productDeleteMedia($mediaIds: [ID!]!, $productId: ID!) {
  productDeleteMedia(mediaIds: $mediaIds, productId: $productId) {
    deletedMediaIds
    mediaUserErrors {
      field
      message
    }
  }
}
"""

PRODUCT_UPDATE_MEDIA = """
mutation productUpdateMedia($media: [UpdateMediaInput!]!, $productId: ID!) {
  productUpdateMedia(media: $media, productId: $productId) {
    media {
      ... on MediaImage {
        id
        alt
      }
    }
    mediaUserErrors {
      field
      message
    }
  }
}
"""


def staged_upload(
    gql: GraphQLClient, resource: str, filename: str, mime_type: str
) -> models.StagedTarget:
    """ステージングアップロード先を作成。ターゲットが返らなければ UploadError。"""
    data = gql.execute(
        STAGED_UPLOADS_CREATE,
        {
            "input": [
                {
                    "resource": resource,
                    "filename": filename,
                    "mimeType": mime_type,
                    "httpMethod": "POST",
                }
            ]
        },
    )
    result = models.MutationResult.from_api(data.get("stagedUploadsCreate"), "stagedTargets")
    if not result.ok:
        raise UploadError(f"stagedUploadsCreate failed: {result.error_message()}")
    targets = result.payload or []
    target = models.StagedTarget.from_api(targets[0] if targets else None)
    if target is None:
        raise UploadError("Failed to create staged upload")
    return target


def upload_to_target(
    target: models.StagedTarget,
    data: bytes,
    filename: str,
    mime_type: str,
    session: Optional[requests.Session] = None,
) -> None:
    """ステージング先へ multipart でアップロード。パラメータはそのまま送る。"""
    try:
        http.post_multipart(
            target.url,
            target.parameters,
            "file",
            filename,
            data,
            mime_type,
            session=session,
        )
    except requests.RequestException as e:
        raise UploadError(f"Upload failed: {e}") from e


def file_create(gql: GraphQLClient, resource_url: str, alt: str = "") -> models.MutationResult:
    """ファイル（Files API）を作成。payload は作成された files の先頭。"""
    data = gql.execute(
        FILE_CREATE,
        {"files": [{"originalSource": resource_url, "alt": alt, "contentType": "FILE"}]},
    )
    result = models.MutationResult.from_api(data.get("fileCreate"), "files")
    files = result.payload or []
    result.payload = models.CreatedMedia.from_api(files[0]) if files else None
    return result


def get_file(gql: GraphQLClient, file_id: str) -> Optional[models.FileInfo]:
    """GenericFile の状態と URL を取得。存在しなければ None。"""
    data = gql.execute(FILE_NODE_QUERY, {"id": file_id})
    return models.FileInfo.from_api(data.get("node"))


def create_media(
    gql: GraphQLClient, product_id: str, source: str, alt: str
) -> models.MutationResult:
    """商品にメディアを追加。payload は CreatedMedia または None。"""
    data = gql.execute(
        PRODUCT_CREATE_MEDIA,
        {
            "productId": product_id,
            "media": [{"alt": alt, "mediaContentType": "IMAGE", "originalSource": source}],
        },
    )
    result = models.MutationResult.from_api(
        data.get("productCreateMedia"), "media", errors_key="mediaUserErrors"
    )
    media = result.payload or []
    result.payload = models.CreatedMedia.from_api(media[0]) if media else None
    return result


def delete_media(
    gql: GraphQLClient, product_id: str, media_ids: list[str]
) -> models.MutationResult:
    """商品メディアを削除。payload は削除された ID のリスト。"""
    data = gql.execute(PRODUCT_DELETE_MEDIA, {"productId": product_id, "mediaIds": media_ids})
    result = models.MutationResult.from_api(
        data.get("productDeleteMedia"), "deletedMediaIds", errors_key="mediaUserErrors"
    )
    result.payload = result.payload or []
    return result


def update_media_alt(
    gql: GraphQLClient, product_id: str, media_id: str, alt: str
) -> models.MutationResult:
    """メディアの alt テキストのみ更新。"""
    data = gql.execute(
        PRODUCT_UPDATE_MEDIA,
        {"productId": product_id, "media": [{"id": media_id, "alt": alt}]},
    )
    return models.MutationResult.from_api(
        data.get("productUpdateMedia"), "media", errors_key="mediaUserErrors"
    )
