"""
中继请求 Schema：服务端入队、客户端轮询并回报完成
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class TabRequestItem(BaseModel):
    """队列中的一条请求"""
    id: str
    kind: str
    status: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: float


class TabRequestList(BaseModel):
    requests: List[TabRequestItem]


class CompleteTabRequest(BaseModel):
    """完成回报：截图可带 dataUrl 或已保存的文件名；失败时带 error"""
    model_config = ConfigDict(populate_by_name=True)

    data_url: Optional[str] = Field(default=None, alias="dataUrl")
    filename: Optional[str] = None
    success: Optional[bool] = None
    download_id: Optional[str] = Field(default=None, alias="downloadId")
    error: Optional[str] = None

    def result_payload(self) -> Dict[str, Any]:
        """只保留客户端实际给出的字段"""
        result: Dict[str, Any] = {}
        if self.data_url:
            result["dataUrl"] = self.data_url
        if self.success and self.filename:
            result["success"] = True
            result["filename"] = self.filename
            if self.download_id is not None:
                result["downloadId"] = self.download_id
        return result
