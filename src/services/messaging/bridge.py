"""JavaScript injected into WhatsApp Web once the chat list is visible.

Exposes ``window.WAGateway`` with one async function per backend operation.
WhatsApp Web ships its modules through ``window.require``; module names
follow the current web build and are resolved once at injection time.
``install`` returns false while the modules are not loaded yet so the page
monitor can retry on its next poll.
"""

WHATSAPP_WEB_BRIDGE = r"""
() => {
  if (window.WAGateway) return true;
  if (typeof window.require !== 'function') return false;

  const r = window.require;
  let collections;
  try {
    collections = r('WAWebCollections');
  } catch (e) {
    return false;
  }

  const Store = {
    Chat: collections.Chat,
    Msg: collections.Msg,
    WidFactory: r('WAWebWidFactory'),
    MsgKey: r('WAWebMsgKey'),
    User: r('WAWebUserPrefsMeUser'),
    ChatState: r('WAWebChatStateBridge'),
    FindChat: r('WAWebFindChatAction'),
    SendMessage: r('WAWebSendMsgChatAction'),
    ForwardUtils: r('WAWebChatForwardMessage'),
    OpaqueData: r('WAWebMediaOpaqueData'),
    MediaPrep: r('WAWebPrepRawMedia'),
    MediaObject: r('WAWebMediaStorage'),
    MediaTypes: r('WAWebMmsMediaTypes'),
    MediaUpload: r('WAWebMediaMmsV4Upload'),
  };

  const findChat = async (chatId) => {
    const wid = Store.WidFactory.createWid(chatId);
    let chat = Store.Chat.get(wid);
    if (!chat) {
      const result = await Store.FindChat.findOrCreateLatestChat(wid);
      chat = result && result.chat;
    }
    return chat || null;
  };

  const requireChat = async (chatId) => {
    const chat = await findChat(chatId);
    if (!chat) throw new Error(`Chat not found: ${chatId}`);
    return chat;
  };

  const findMessage = async (messageId) => {
    let msg = Store.Msg.get(messageId);
    if (!msg) {
      const result = await Store.Msg.getMessagesById([messageId]);
      msg = result && result.messages && result.messages[0];
    }
    return msg || null;
  };

  const serializeMessage = (msg) => ({
    id: msg.id._serialized,
    type: msg.type,
    timestamp: msg.t,
    chatId: msg.id.remote && msg.id.remote._serialized,
    hasMedia: Boolean(msg.mediaData),
  });

  const toFile = ({ data, mimetype, filename }) => {
    const binary = atob(data);
    const bytes = new Uint8Array(binary.length);
    for (let i = 0; i < binary.length; i++) bytes[i] = binary.charCodeAt(i);
    return new File([bytes], filename || 'file', { type: mimetype, lastModified: Date.now() });
  };

  const uploadMedia = async (media) => {
    const file = toFile(media);
    const opaqueData = await Store.OpaqueData.createFromData(file, file.type);
    const mediaData = await Store.MediaPrep.prepRawMedia(opaqueData, {}).waitForPrep();
    const mediaObject = Store.MediaObject.getOrCreateMediaObject(mediaData.filehash);
    const mediaType = Store.MediaTypes.msgToMediaType({ type: mediaData.type, isGif: mediaData.isGif });

    mediaData.renderableUrl = mediaData.mediaBlob.url();
    mediaObject.consolidate(mediaData.toJSON());
    mediaData.mediaBlob.autorelease();

    const uploaded = await Store.MediaUpload.uploadMedia({
      mimetype: mediaData.mimetype,
      mediaObject,
      mediaType,
    });
    const entry = uploaded.mediaEntry;
    mediaData.set({
      clientUrl: entry.mmsUrl,
      deprecatedMms3Url: entry.deprecatedMms3Url,
      directPath: entry.directPath,
      mediaKey: entry.mediaKey,
      mediaKeyTimestamp: entry.mediaKeyTimestamp,
      filehash: mediaObject.filehash,
      encFilehash: entry.encFilehash,
      uploadhash: entry.uploadHash,
      size: mediaObject.size,
      streamingSidecar: entry.sidecar,
      firstFrameSidecar: entry.firstFrameSidecar,
      filename: file.name,
    });
    return mediaData.toJSON();
  };

  window.WAGateway = {
    async getChat(chatId) {
      const chat = await findChat(chatId);
      if (!chat) return null;
      return { id: chat.id._serialized, name: chat.name || chat.formattedTitle || null, isGroup: Boolean(chat.isGroup) };
    },

    async sendStateTyping(chatId) {
      const chat = await requireChat(chatId);
      await Store.ChatState.sendChatStateComposing(chat.id);
      return true;
    },

    async clearState(chatId) {
      const chat = await requireChat(chatId);
      await Store.ChatState.sendChatStatePaused(chat.id);
      return true;
    },

    async sendMessage(chatId, content, options) {
      const chat = await requireChat(chatId);
      const me = Store.User.getMaybeMePnUser();
      const newId = new Store.MsgKey({
        from: me,
        to: chat.id,
        id: await Store.MsgKey.newId(),
        selfDir: 'out',
      });

      let extra = {};
      if (options.quotedMessageId) {
        const quoted = await findMessage(options.quotedMessageId);
        if (quoted) extra = { ...quoted.msgContextInfo(chat) };
      }

      let body = content.text;
      let type = 'chat';
      if (content.media) {
        const media = await uploadMedia(content.media);
        body = media.preview;
        delete media.preview;
        type = media.type;
        extra = { ...extra, ...media, caption: options.caption || undefined };
      }

      const message = {
        ...extra,
        id: newId,
        ack: 0,
        body,
        type,
        from: me,
        to: chat.id,
        local: true,
        self: 'out',
        t: Math.floor(Date.now() / 1000),
        isNewMsg: true,
      };

      await Promise.all(Store.SendMessage.addAndSendMsgToChat(chat, message));
      const sent = Store.Msg.get(newId._serialized) || message;
      return { id: newId._serialized, timestamp: sent.t, type: sent.type };
    },

    async getMessage(messageId) {
      const msg = await findMessage(messageId);
      return msg ? serializeMessage(msg) : null;
    },

    async forwardMessage(messageId, chatId) {
      const msg = await findMessage(messageId);
      if (!msg) throw new Error(`Message not found: ${messageId}`);
      const chat = await requireChat(chatId);
      await Store.ForwardUtils.forwardMessagesToChats([msg], [chat], false);
      return true;
    },
  };

  return true;
}
"""
