"""Thin wrappers so id encoders can be MLflow-serialised transparently."""
import tempfile, joblib
from sklearn.preprocessing import LabelEncoder

def dump_encoder_tmp(enc: LabelEncoder, prefix: str = "encoder") -> str:
    tmp = tempfile.NamedTemporaryFile(prefix=f"{prefix}_", suffix=".joblib", delete=False)
    tmp.close()
    joblib.dump(enc, tmp.name)
    return tmp.name
