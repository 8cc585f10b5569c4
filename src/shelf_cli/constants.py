"""File and folder names shared across shelf components."""

MANIFEST_FILE = "package.json"
STAGING_FOLDER = ".shelf"
LOCKFILE_NAME = "shelf.lock"
SIGNATURE_FILE = "shelf.sig"
INSTALLATIONS_FILE = "installations.json"
STORE_PACKAGES_FOLDER = "packages"
NODE_MODULES = "node_modules"
BIN_FOLDER = ".bin"

# Script families, first declared script wins
PRE_PUBLISH_SCRIPTS = ("preshelf", "prepare", "prepublishOnly", "prepublish")
POST_PUBLISH_SCRIPTS = ("postshelf", "postpublish")
POST_INSTALL_SCRIPT = "postinstall"

LOCATOR_FILE = "file:"
LOCATOR_LINK = "link:"
