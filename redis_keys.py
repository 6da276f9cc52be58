REDIS_SCENE_KEY = "scene:{scene_id}" # scene id - hash of data/created_at/updated_at
REDIS_SCENES_INDEX_KEY = "scenes:index" # set of scene ids
REDIS_BLOB_KEY = "blob:{blob_id}" # blob id - hash of data (base64)/mime_type/created_at
REDIS_BLOBS_INDEX_KEY = "blobs:index" # set of blob ids

# **Example `scene:{id}` hash fields**
# - `data` = json string `{"sceneVersion": 12, "elements": [...]}`
# - `created_at` = ISO timestamp, kept across overwrites
# - `updated_at` = ISO timestamp of the last write
